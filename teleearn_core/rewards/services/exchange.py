# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Exchange Service.

Converts points into a main fiat balance at the active rate (or the
fallback constant) and points into coins at 1:1. Every check runs before
any mutation; the debit and the credit are one ledger transfer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from teleearn_core.rewards import calculator
from teleearn_core.rewards.errors import BelowMinimumError, InsufficientPointsError
from teleearn_core.rewards.services.base import RewardService
from teleearn_core.rewards.store import UnitOfWork
from teleearn_core.rewards.types import Account, Currency, UserAccount, main_account
from teleearn_core.schema.requests import CoinConversionRequest, ExchangeRequest, parse_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExchangeQuote:
    points: int
    currency: Currency
    rate: Decimal
    amount: int


@dataclass(frozen=True, slots=True)
class ExchangeOutcome:
    points_spent: int
    amount: int
    currency: Currency
    rate: Decimal
    user: UserAccount


@dataclass(frozen=True, slots=True)
class CoinConversionOutcome:
    points_spent: int
    coins: int
    user: UserAccount


class ExchangeService(RewardService):
    def quote(self, points: int, currency: Currency | str) -> ExchangeQuote:
        request = parse_request(ExchangeRequest, points=points, currency=currency)
        rate = calculator.resolve_exchange_rate(
            self.catalog.list_exchange_rates(), request.currency, self.cfg
        )
        return ExchangeQuote(
            points=request.points,
            currency=request.currency,
            rate=rate,
            amount=calculator.exchange_amount(request.points, rate),
        )

    def exchange_points(self, user_id: str, points: int, currency: Currency | str) -> ExchangeOutcome:
        quote = self.quote(points, currency)
        if quote.points < self.cfg.min_exchange_points:
            raise BelowMinimumError(
                f"Minimum exchange is {self.cfg.min_exchange_points} points",
                minimum=self.cfg.min_exchange_points,
            )
        if quote.amount <= 0:
            raise BelowMinimumError("Exchange amount rounds to zero", minimum=self.cfg.min_exchange_points)
        now = self.now()

        def _exchange(uow: UnitOfWork) -> ExchangeOutcome:
            user = self.require_user(uow)
            if user.points < quote.points:
                raise InsufficientPointsError(
                    "Insufficient points",
                    balance=user.points,
                    required=quote.points,
                )
            user = self.ledger.transfer(
                uow,
                source=Account.POINTS,
                source_amount=quote.points,
                target=main_account(quote.currency),
                target_amount=quote.amount,
                reason="exchange",
                ref=self.new_ref(user_id, "exchange"),
                now=now,
                insufficient=InsufficientPointsError,
                meta={"rate": str(quote.rate), "currency": quote.currency.value},
            )
            return ExchangeOutcome(
                points_spent=quote.points,
                amount=quote.amount,
                currency=quote.currency,
                rate=quote.rate,
                user=user,
            )

        outcome = self.store.atomic(user_id, _exchange)
        logger.info(
            "[Exchange] user=%s points=%s -> %s %s",
            user_id, outcome.points_spent, outcome.amount, outcome.currency.value,
        )
        return outcome

    def convert_to_coins(self, user_id: str, points: int) -> CoinConversionOutcome:
        request = parse_request(CoinConversionRequest, points=points)
        now = self.now()

        def _convert(uow: UnitOfWork) -> CoinConversionOutcome:
            user = self.ledger.transfer(
                uow,
                source=Account.POINTS,
                source_amount=request.points,
                target=Account.COIN,
                target_amount=request.points,
                reason="coin_conversion",
                ref=self.new_ref(user_id, "coins"),
                now=now,
                insufficient=InsufficientPointsError,
            )
            return CoinConversionOutcome(points_spent=request.points, coins=request.points, user=user)

        outcome = self.store.atomic(user_id, _convert)
        logger.info("[Exchange] user=%s converted %s points to coins", user_id, outcome.coins)
        return outcome
