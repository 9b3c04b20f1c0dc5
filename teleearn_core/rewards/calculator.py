# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from typing import TYPE_CHECKING, Iterable, Optional, Union

from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.errors import RewardValidationError
from teleearn_core.rewards.rate_limit import effective_ads_watched
from teleearn_core.rewards.types import Currency, QuestType, TaskType, UserAccount

if TYPE_CHECKING:
    from teleearn_core.schema.catalog import (
        AdTaskSettings,
        AppTask,
        ExchangeRate,
        InvestmentPackage,
        LinkTask,
        Quest,
    )

MINOR_UNITS = Decimal("100")


def floor_int(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def ad_reward(settings: "AdTaskSettings") -> int:
    return settings.points_per_view


def task_reward(
    task_type: TaskType | str,
    task: Optional[Union["AppTask", "LinkTask"]],
    config: RewardsConfig | None = None,
) -> int:
    """Flat task reward; configured fallback when the task record is missing."""
    cfg = config or RewardsConfig()
    try:
        kind = TaskType(task_type)
    except ValueError as exc:
        raise RewardValidationError(f"Unknown task type: {task_type!r}") from exc
    if task is not None:
        return task.reward
    if kind == TaskType.APP:
        return cfg.app_task_fallback_reward
    return cfg.link_task_fallback_reward


def quest_reward(quest: "Quest") -> int:
    return quest.reward


def streak_reward(streak: int, config: RewardsConfig | None = None) -> int:
    cfg = config or RewardsConfig()
    return streak * cfg.streak_reward_unit


def investment_ad_share(package: "InvestmentPackage", config: RewardsConfig | None = None) -> int:
    cfg = config or RewardsConfig()
    return floor_int(Decimal(package.reward_per_task) * cfg.investment_ad_share_ratio)


def fallback_rate(currency: Currency, config: RewardsConfig | None = None) -> Decimal:
    cfg = config or RewardsConfig()
    currency = Currency(currency)
    if currency == Currency.USD:
        return cfg.fallback_usd_rate
    if currency == Currency.EGP:
        return cfg.fallback_egp_rate
    raise RewardValidationError(f"No exchange rate for {currency.value}")


def resolve_exchange_rate(
    rates: Iterable["ExchangeRate"],
    currency: Currency,
    config: RewardsConfig | None = None,
) -> Decimal:
    """Active points->currency rate, or the fallback constant."""
    currency = Currency(currency)
    for rate in rates:
        if rate.is_active and rate.from_currency == Currency.POINTS and rate.to_currency == currency:
            return Decimal(rate.rate)
    return fallback_rate(currency, config)


def exchange_amount(points: int, rate: Decimal) -> int:
    """Minor units credited for ``points`` at ``rate``: floor(points * rate * 100)."""
    return floor_int(Decimal(points) * Decimal(rate) * MINOR_UNITS)


def recompute_quest_progress(
    quest: "Quest",
    user: UserAccount,
    *,
    referral_count: int,
    completion_count: int,
    now: datetime,
) -> int:
    """Authoritative progress from raw activity counts, never from cached progress."""
    kind = QuestType(quest.type)
    if kind == QuestType.WATCH_ADS:
        return effective_ads_watched(user, now)[0]
    if kind == QuestType.INVITE_FRIENDS:
        return referral_count
    return completion_count
