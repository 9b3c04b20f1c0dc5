# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Unit tests for InvestmentService."""

from datetime import timedelta

import pytest

from teleearn_core.rewards.adapters.memory import InMemoryCatalog
from teleearn_core.rewards.errors import (
    InsufficientBalanceError,
    InvestmentAdLimitReachedError,
    InvestmentExpiredError,
    InvestmentNotFoundError,
    PackageNotFoundError,
    RewardValidationError,
    TaskAlreadyCompletedTodayError,
)
from teleearn_core.rewards.facade import RewardsFacade
from teleearn_core.rewards.types import Currency
from teleearn_core.schema.catalog import InvestmentPackage


class TestSubscribe:
    """Tests for InvestmentService.subscribe."""

    def test_points_package_debits_points(self, facade, user, clock):
        outcome = facade.subscribe_investment(user_id="u1", package_id=10)
        assert not outcome.redirect_to_deposit
        assert outcome.user.points == 5000
        investment = outcome.investment
        assert investment.is_active
        assert investment.start_date == clock.now
        assert investment.end_date == clock.now + timedelta(days=30)

    def test_points_package_priced_in_egp_uses_investment_balance(self, facade, user_factory):
        user_factory("u1", investment_egp_balance=2500)
        outcome = facade.subscribe_investment(user_id="u1", package_id=12)
        assert outcome.user.investment_egp_balance == 500

    def test_points_package_insufficient(self, facade, user_factory, store):
        user_factory("u1", points=4999)
        with pytest.raises(InsufficientBalanceError):
            facade.subscribe_investment(user_id="u1", package_id=10)
        assert facade.list_investments(user_id="u1") == []
        assert store.get_user("u1").points == 4999

    def test_own_package_redirects_to_deposit(self, facade, user_factory):
        user_factory("u1", usd_balance=999)
        outcome = facade.subscribe_investment(user_id="u1", package_id=11)
        assert outcome.redirect_to_deposit
        assert outcome.investment is None
        assert outcome.user.usd_balance == 999
        assert facade.list_investments(user_id="u1") == []

    def test_own_package_debits_main_balance(self, facade, user_factory):
        user_factory("u1", usd_balance=1500)
        outcome = facade.subscribe_investment(user_id="u1", package_id=11)
        assert outcome.investment is not None
        assert outcome.user.usd_balance == 500

    def test_own_package_must_be_fiat(self, store, config, clock, user):
        catalog = InMemoryCatalog(
            packages=[
                InvestmentPackage(
                    id=1, type="own", price=10, number_of_days=1,
                    reward_per_task=1, reward_currency="points",
                )
            ]
        )
        facade = RewardsFacade(store=store, catalog=catalog, config=config, clock=clock)
        with pytest.raises(RewardValidationError):
            facade.subscribe_investment(user_id="u1", package_id=1)

    def test_unknown_package(self, facade, user):
        with pytest.raises(PackageNotFoundError):
            facade.subscribe_investment(user_id="u1", package_id=404)


class TestInvestmentTask:
    """Tests for the once-per-day investment task."""

    def test_reward_in_package_currency(self, facade, user_factory):
        user_factory("u1", usd_balance=1000)
        investment = facade.subscribe_investment(user_id="u1", package_id=11).investment
        outcome = facade.complete_investment_task(user_id="u1", investment_id=investment.investment_id)
        assert outcome.reward == 150
        assert outcome.currency == Currency.USD
        assert outcome.user.investment_usd_balance == 150
        assert outcome.investment.tasks_completed_today == 1

    def test_once_per_day(self, facade, user, clock):
        investment = facade.subscribe_investment(user_id="u1", package_id=10).investment
        facade.complete_investment_task(user_id="u1", investment_id=investment.investment_id)
        clock.advance(hours=1)
        with pytest.raises(TaskAlreadyCompletedTodayError):
            facade.complete_investment_task(user_id="u1", investment_id=investment.investment_id)

        clock.advance(days=1)
        outcome = facade.complete_investment_task(user_id="u1", investment_id=investment.investment_id)
        assert outcome.investment.tasks_completed_today == 1
        assert outcome.user.points == 5000 + 2 * 250

    def test_expiry_is_persisted_before_rejection(self, facade, user, clock):
        investment = facade.subscribe_investment(user_id="u1", package_id=10).investment
        clock.advance(days=30)
        with pytest.raises(InvestmentExpiredError):
            facade.complete_investment_task(user_id="u1", investment_id=investment.investment_id)
        stored = facade.list_investments(user_id="u1")
        assert [inv.is_active for inv in stored] == [False]
        assert facade.get_user(user_id="u1").points == 5000

    def test_other_users_investment_not_found(self, facade, user, user_factory):
        user_factory("u2")
        investment = facade.subscribe_investment(user_id="u1", package_id=10).investment
        with pytest.raises(InvestmentNotFoundError):
            facade.complete_investment_task(user_id="u2", investment_id=investment.investment_id)


class TestInvestmentAds:
    def test_share_and_daily_cap(self, facade, user, clock):
        investment = facade.subscribe_investment(user_id="u1", package_id=10).investment
        for i in range(10):
            outcome = facade.watch_investment_ad(user_id="u1", investment_id=investment.investment_id)
            assert outcome.reward == 25
            assert outcome.ads_remaining == 9 - i
        with pytest.raises(InvestmentAdLimitReachedError):
            facade.watch_investment_ad(user_id="u1", investment_id=investment.investment_id)
        assert facade.get_user(user_id="u1").points == 5000 + 10 * 25

        clock.advance(days=1)
        outcome = facade.watch_investment_ad(user_id="u1", investment_id=investment.investment_id)
        assert outcome.investment.ads_watched_today == 1

    def test_ads_and_task_are_independent(self, facade, user):
        investment = facade.subscribe_investment(user_id="u1", package_id=10).investment
        facade.complete_investment_task(user_id="u1", investment_id=investment.investment_id)
        outcome = facade.watch_investment_ad(user_id="u1", investment_id=investment.investment_id)
        assert outcome.investment.tasks_completed_today == 1
        assert outcome.investment.ads_watched_today == 1

    def test_expired_investment(self, facade, user, clock):
        investment = facade.subscribe_investment(user_id="u1", package_id=10).investment
        clock.advance(days=31)
        with pytest.raises(InvestmentExpiredError):
            facade.watch_investment_ad(user_id="u1", investment_id=investment.investment_id)
        with pytest.raises(InvestmentExpiredError):
            facade.watch_investment_ad(user_id="u1", investment_id=investment.investment_id)


class TestListingAndTransfer:
    def test_active_only_filter(self, facade, user, clock):
        facade.subscribe_investment(user_id="u1", package_id=10)
        clock.advance(days=31)
        facade.subscribe_investment(user_id="u1", package_id=10)
        assert len(facade.list_investments(user_id="u1")) == 2
        active = facade.list_investments(user_id="u1", active_only=True)
        assert len(active) == 1
        assert active[0].start_date == clock.now

    def test_deactivate(self, facade, user):
        investment = facade.subscribe_investment(user_id="u1", package_id=10).investment
        facade.deactivate_investment(user_id="u1", investment_id=investment.investment_id)
        with pytest.raises(InvestmentExpiredError):
            facade.complete_investment_task(user_id="u1", investment_id=investment.investment_id)

    def test_transfer_to_main(self, facade, user_factory):
        user_factory("u1", investment_egp_balance=900)
        outcome = facade.transfer_investment_to_main(user_id="u1", amount=400, currency="egp")
        assert outcome.user.investment_egp_balance == 500
        assert outcome.user.egp_balance == 400

    def test_transfer_insufficient(self, facade, user):
        with pytest.raises(InsufficientBalanceError):
            facade.transfer_investment_to_main(user_id="u1", amount=1, currency="usd")
