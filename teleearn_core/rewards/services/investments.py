# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Investment Lifecycle Service.

Each UserInvestment moves one way, Active -> Expired. Expiry is detected
lazily: whenever an investment is read for a reward and ``end_date`` has
passed, ``is_active=False`` is committed first and only then is
``InvestmentExpiredError`` raised, so the transition survives the
rejection.

Daily task completion and daily ad watching are two independent
per-investment counters bucketed by UTC date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional

from teleearn_core.rewards import calculator, rate_limit
from teleearn_core.rewards.errors import (
    InsufficientBalanceError,
    InvestmentAdLimitReachedError,
    InvestmentExpiredError,
    InvestmentNotFoundError,
    PackageNotFoundError,
    RewardValidationError,
    TaskAlreadyCompletedTodayError,
)
from teleearn_core.rewards.ledger import build_idempotency_key
from teleearn_core.rewards.services.base import RewardService, new_id
from teleearn_core.rewards.store import UnitOfWork
from teleearn_core.rewards.types import (
    FIAT_CURRENCIES,
    Currency,
    PackageType,
    UserAccount,
    UserInvestment,
    investment_account,
    main_account,
    utc_date,
)
from teleearn_core.schema.catalog import InvestmentPackage
from teleearn_core.schema.requests import TransferToMainRequest, parse_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubscriptionOutcome:
    investment: Optional[UserInvestment]
    redirect_to_deposit: bool
    user: UserAccount


@dataclass(frozen=True, slots=True)
class InvestmentTaskOutcome:
    reward: int
    currency: Currency
    investment: UserInvestment
    user: UserAccount


@dataclass(frozen=True, slots=True)
class InvestmentAdOutcome:
    reward: int
    currency: Currency
    ads_remaining: int
    investment: UserInvestment
    user: UserAccount


@dataclass(frozen=True, slots=True)
class TransferOutcome:
    amount: int
    currency: Currency
    user: UserAccount


@dataclass(frozen=True, slots=True)
class _Expired:
    investment_id: str


class InvestmentService(RewardService):
    def _package(self, package_id: int) -> InvestmentPackage:
        package = self.catalog.get_investment_package(package_id)
        if package is None:
            raise PackageNotFoundError(f"Investment package {package_id} not found", package_id=package_id)
        return package

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, user_id: str, package_id: int) -> SubscriptionOutcome:
        """Debit the package price and create the investment in one unit of work.

        ``points`` packages pay from the account named by the reward
        currency; ``own`` packages pay from the main fiat balance and an
        insufficient balance yields ``redirect_to_deposit`` instead of an
        error.
        """
        package = self._package(package_id)
        if package.type == PackageType.OWN:
            if package.reward_currency not in FIAT_CURRENCIES:
                raise RewardValidationError(
                    "Own packages must be priced in usd or egp",
                    package_id=package.id,
                )
            account = main_account(package.reward_currency)
        else:
            account = investment_account(package.reward_currency)
        now = self.now()

        def _subscribe(uow: UnitOfWork) -> SubscriptionOutcome:
            user = self.require_user(uow)
            if user.balance(account) < package.price:
                if package.type == PackageType.OWN:
                    logger.debug(
                        "[Investments] user=%s needs deposit for package=%s", user_id, package.id
                    )
                    return SubscriptionOutcome(investment=None, redirect_to_deposit=True, user=user)
                raise InsufficientBalanceError(
                    "Insufficient balance",
                    account=account.value,
                    balance=user.balance(account),
                    required=package.price,
                )

            investment = UserInvestment(
                investment_id=new_id(),
                user_id=user_id,
                package_id=package.id,
                start_date=now,
                end_date=now + timedelta(days=package.number_of_days),
            )
            user = self.ledger.debit(
                uow,
                account,
                package.price,
                reason="investment_subscription",
                ref=build_idempotency_key(user_id, "subscribe", investment.investment_id),
                now=now,
                meta={"package_id": package.id},
            )
            uow.put_investment(investment)
            return SubscriptionOutcome(investment=investment, redirect_to_deposit=False, user=user)

        outcome = self.store.atomic(user_id, _subscribe)
        if outcome.investment is not None:
            logger.info(
                "[Investments] user=%s subscribed package=%s price=%s %s",
                user_id, package.id, package.price, account.value,
            )
        return outcome

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------

    def _load_active(self, uow: UnitOfWork, investment_id: str, now: datetime) -> UserInvestment | _Expired:
        investment = uow.get_investment(investment_id)
        if investment is None:
            raise InvestmentNotFoundError(
                f"Investment {investment_id} not found", investment_id=investment_id
            )
        if not investment.is_active:
            raise InvestmentExpiredError("Investment is no longer active", investment_id=investment_id)
        if rate_limit.is_expired(investment, now):
            uow.put_investment(replace(investment, is_active=False))
            return _Expired(investment_id)
        return investment

    def _expired(self, user_id: str, marker: _Expired) -> InvestmentExpiredError:
        logger.info("[Investments] user=%s investment=%s expired", user_id, marker.investment_id)
        return InvestmentExpiredError("Investment package has expired", investment_id=marker.investment_id)

    def complete_task(self, user_id: str, investment_id: str) -> InvestmentTaskOutcome:
        now = self.now()

        def _complete(uow: UnitOfWork) -> InvestmentTaskOutcome | _Expired:
            self.require_user(uow)
            investment = self._load_active(uow, investment_id, now)
            if isinstance(investment, _Expired):
                return investment
            decision = rate_limit.can_complete_investment_task(investment, now)
            if not decision.allowed:
                logger.debug("[Investments] Task rejected user=%s reason=%s", user_id, decision.reason)
                raise TaskAlreadyCompletedTodayError(
                    "Task already completed today", investment_id=investment_id
                )
            package = self._package(investment.package_id)
            reward = package.reward_per_task
            user = self.ledger.credit(
                uow,
                investment_account(package.reward_currency),
                reward,
                reason="investment_task",
                ref=build_idempotency_key(user_id, "inv_task", investment_id, utc_date(now).isoformat()),
                now=now,
            )
            same_day = (
                investment.last_task_date is not None
                and utc_date(investment.last_task_date) == utc_date(now)
            )
            investment = replace(
                investment,
                tasks_completed_today=(investment.tasks_completed_today if same_day else 0) + 1,
                last_task_date=now,
            )
            uow.put_investment(investment)
            return InvestmentTaskOutcome(
                reward=reward,
                currency=Currency(package.reward_currency),
                investment=investment,
                user=user,
            )

        outcome = self.store.atomic(user_id, _complete)
        if isinstance(outcome, _Expired):
            raise self._expired(user_id, outcome)
        logger.info(
            "[Investments] user=%s task investment=%s reward=%s %s",
            user_id, investment_id, outcome.reward, outcome.currency.value,
        )
        return outcome

    def watch_ad(self, user_id: str, investment_id: str) -> InvestmentAdOutcome:
        now = self.now()

        def _watch(uow: UnitOfWork) -> InvestmentAdOutcome | _Expired:
            self.require_user(uow)
            investment = self._load_active(uow, investment_id, now)
            if isinstance(investment, _Expired):
                return investment
            decision = rate_limit.can_watch_investment_ad(investment, now, self.cfg)
            if not decision.allowed:
                logger.debug("[Investments] Ad rejected user=%s reason=%s", user_id, decision.reason)
                raise InvestmentAdLimitReachedError(
                    f"Daily ad limit reached ({decision.ads_watched_today}/{self.cfg.investment_ad_daily_cap})",
                    investment_id=investment_id,
                )
            package = self._package(investment.package_id)
            reward = calculator.investment_ad_share(package, self.cfg)
            user = self.ledger.credit(
                uow,
                investment_account(package.reward_currency),
                reward,
                reason="investment_ad",
                ref=self.new_ref(user_id, "inv_ad"),
                now=now,
                meta={"investment_id": investment_id},
            )
            count = decision.ads_watched_today + 1
            investment = replace(investment, ads_watched_today=count, last_ad_watch=now)
            uow.put_investment(investment)
            return InvestmentAdOutcome(
                reward=reward,
                currency=Currency(package.reward_currency),
                ads_remaining=self.cfg.investment_ad_daily_cap - count,
                investment=investment,
                user=user,
            )

        outcome = self.store.atomic(user_id, _watch)
        if isinstance(outcome, _Expired):
            raise self._expired(user_id, outcome)
        logger.info(
            "[Investments] user=%s ad investment=%s reward=%s %s remaining=%s",
            user_id, investment_id, outcome.reward, outcome.currency.value, outcome.ads_remaining,
        )
        return outcome

    # ------------------------------------------------------------------
    # Listing & lifecycle
    # ------------------------------------------------------------------

    def list_investments(self, user_id: str, *, active_only: bool = False) -> List[UserInvestment]:
        now = self.now()

        def _list(uow: UnitOfWork) -> List[UserInvestment]:
            self.require_user(uow)
            result = []
            for investment in uow.list_investments():
                if investment.is_active and rate_limit.is_expired(investment, now):
                    investment = replace(investment, is_active=False)
                    uow.put_investment(investment)
                if active_only and not investment.is_active:
                    continue
                result.append(investment)
            return result

        return self.store.atomic(user_id, _list)

    def deactivate(self, user_id: str, investment_id: str) -> UserInvestment:
        def _deactivate(uow: UnitOfWork) -> UserInvestment:
            investment = uow.get_investment(investment_id)
            if investment is None:
                raise InvestmentNotFoundError(
                    f"Investment {investment_id} not found", investment_id=investment_id
                )
            investment = replace(investment, is_active=False)
            uow.put_investment(investment)
            return investment

        investment = self.store.atomic(user_id, _deactivate)
        logger.info("[Investments] user=%s deactivated investment=%s", user_id, investment_id)
        return investment

    def transfer_to_main(self, user_id: str, amount: int, currency: Currency | str) -> TransferOutcome:
        request = parse_request(TransferToMainRequest, amount=amount, currency=currency)
        now = self.now()

        def _transfer(uow: UnitOfWork) -> TransferOutcome:
            user = self.ledger.transfer(
                uow,
                source=investment_account(request.currency),
                source_amount=request.amount,
                target=main_account(request.currency),
                target_amount=request.amount,
                reason="investment_transfer",
                ref=self.new_ref(user_id, "inv_transfer"),
                now=now,
            )
            return TransferOutcome(amount=request.amount, currency=request.currency, user=user)

        outcome = self.store.atomic(user_id, _transfer)
        logger.info(
            "[Investments] user=%s moved %s %s to main balance",
            user_id, outcome.amount, outcome.currency.value,
        )
        return outcome
