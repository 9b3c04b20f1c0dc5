# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Unit tests for ExchangeService."""

from decimal import Decimal

import pytest

from teleearn_core.rewards.adapters.memory import InMemoryCatalog
from teleearn_core.rewards.errors import (
    BelowMinimumError,
    InsufficientPointsError,
    RewardValidationError,
)
from teleearn_core.rewards.facade import RewardsFacade
from teleearn_core.rewards.types import Currency
from teleearn_core.schema.catalog import ExchangeRate


class TestExchangePoints:
    def test_usd_at_fallback_rate(self, facade, user):
        outcome = facade.exchange_points(user_id="u1", points=500, currency="usd")
        assert outcome.amount == 5
        assert outcome.currency == Currency.USD
        assert outcome.user.points == 9500
        assert outcome.user.usd_balance == 5

    def test_egp_at_fallback_rate(self, facade, user):
        outcome = facade.exchange_points(user_id="u1", points=1000, currency="egp")
        assert outcome.amount == 500
        assert outcome.user.egp_balance == 500

    def test_configured_rate(self, store, config, clock, user):
        catalog = InMemoryCatalog(
            exchange_rates=[ExchangeRate(to_currency="usd", rate=Decimal("0.0003"))]
        )
        facade = RewardsFacade(store=store, catalog=catalog, config=config, clock=clock)
        outcome = facade.exchange_points(user_id="u1", points=1000, currency="usd")
        assert outcome.rate == Decimal("0.0003")
        assert outcome.amount == 30

    def test_below_minimum(self, facade, user, store):
        with pytest.raises(BelowMinimumError):
            facade.exchange_points(user_id="u1", points=499, currency="usd")
        assert store.get_user("u1").points == 10000

    def test_insufficient_points(self, facade, user_factory, store):
        user_factory("u1", points=600)
        with pytest.raises(InsufficientPointsError) as exc_info:
            facade.exchange_points(user_id="u1", points=1000, currency="usd")
        assert exc_info.value.to_dict()["error"] == "insufficient_points"
        fresh = store.get_user("u1")
        assert fresh.points == 600
        assert fresh.usd_balance == 0

    def test_amount_rounding_to_zero_rejected(self, store, config, clock, user):
        catalog = InMemoryCatalog(
            exchange_rates=[ExchangeRate(to_currency="usd", rate=Decimal("0.000001"))]
        )
        facade = RewardsFacade(store=store, catalog=catalog, config=config, clock=clock)
        with pytest.raises(BelowMinimumError):
            facade.exchange_points(user_id="u1", points=500, currency="usd")
        assert store.get_user("u1").points == 10000

    @pytest.mark.parametrize("currency", ["points", "coin", "eur"])
    def test_non_fiat_currency_rejected(self, facade, user, currency):
        with pytest.raises(RewardValidationError):
            facade.exchange_points(user_id="u1", points=500, currency=currency)

    def test_quote_does_not_touch_balances(self, facade, user, store):
        quote = facade.quote_exchange(points=2500, currency="usd")
        assert quote.amount == 25
        assert store.get_user("u1").usd_balance == 0


class TestConvertToCoins:
    def test_one_to_one(self, facade, user):
        outcome = facade.convert_points_to_coins(user_id="u1", points=1234)
        assert outcome.coins == 1234
        assert outcome.user.points == 10000 - 1234
        assert outcome.user.coin_balance == 1234

    def test_insufficient(self, facade, user):
        with pytest.raises(InsufficientPointsError):
            facade.convert_points_to_coins(user_id="u1", points=10001)

    def test_non_positive(self, facade, user):
        with pytest.raises(RewardValidationError):
            facade.convert_points_to_coins(user_id="u1", points=0)
