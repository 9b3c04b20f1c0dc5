# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from datetime import datetime, timedelta, timezone
import pytest

from teleearn_core.rewards.adapters.memory import InMemoryCatalog, InMemoryRewardStore
from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.facade import RewardsFacade
from teleearn_core.rewards.types import UserAccount
from teleearn_core.schema.catalog import (
    AdTaskSettings,
    AppTask,
    InvestmentPackage,
    LinkTask,
    Quest,
)

T0 = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Injected clock; tests move time explicitly."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_user(user_id: str = "u1", **fields) -> UserAccount:
    defaults = dict(
        user_id=user_id,
        external_id=f"tg-{user_id}",
        referral_code=f"R{user_id.upper():0>5}"[:6],
        created_at=T0,
    )
    defaults.update(fields)
    return UserAccount(**defaults)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return InMemoryRewardStore()


@pytest.fixture
def catalog():
    return InMemoryCatalog(
        ad_settings=AdTaskSettings(points_per_view=500, daily_limit=50, cooldown_seconds=15),
        app_tasks=[AppTask(id=7, name="Install app", reward=300)],
        link_tasks=[LinkTask(id=3, title="Visit channel", reward=80)],
        quests=[
            Quest(id=1, title="Watch 3 ads", type="watch_ads", target=3, reward=1500),
            Quest(id=2, title="Invite 2 friends", type="invite_friends", target=2, reward=2000),
            Quest(id=3, title="Complete 2 tasks", type="complete_tasks", target=2, reward=700),
        ],
        packages=[
            InvestmentPackage(
                id=10, title="Points starter", type="points", price=5000,
                number_of_days=30, reward_per_task=250, reward_currency="points",
            ),
            InvestmentPackage(
                id=11, title="USD plan", type="own", price=1000,
                number_of_days=7, reward_per_task=150, reward_currency="usd",
            ),
            InvestmentPackage(
                id=12, title="EGP investment", type="points", price=2000,
                number_of_days=14, reward_per_task=95, reward_currency="egp",
            ),
        ],
    )


@pytest.fixture
def config():
    return RewardsConfig()


@pytest.fixture
def facade(store, catalog, config, clock):
    return RewardsFacade(store=store, catalog=catalog, config=config, clock=clock)


@pytest.fixture
def user(store):
    return store.create_user(make_user("u1", points=10000))


@pytest.fixture
def user_factory(store):
    def _create(user_id: str, **fields) -> UserAccount:
        return store.create_user(make_user(user_id, **fields))

    return _create
