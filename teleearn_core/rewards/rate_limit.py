# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Time- and count-windowed eligibility checks.

All checks are pure functions of stored state and an explicit ``now``.
They never raise for expected conditions; callers receive a decision
carrying a machine-readable ``reason`` and turn it into an error.

Two ad windows are kept apart: the per-ad cooldown gates consecutive
watches, and the reset marker set on reaching the daily limit gates the
counter reset. Daily counters additionally reset by UTC date bucket.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Optional

from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.types import UserAccount, UserInvestment, utc_date

if TYPE_CHECKING:
    from teleearn_core.schema.catalog import AdTaskSettings

COOLDOWN_ACTIVE = "cooldown_active"
DAILY_LIMIT_REACHED = "daily_limit_reached"
DAILY_BONUS_NOT_READY = "daily_bonus_not_ready"
ALREADY_CLAIMED_TODAY = "already_claimed_today"
INVESTMENT_EXPIRED = "investment_expired"
INVESTMENT_AD_LIMIT_REACHED = "investment_ad_limit_reached"
TASK_ALREADY_COMPLETED_TODAY = "task_already_completed_today"


@dataclass(frozen=True, slots=True)
class AdWatchDecision:
    allowed: bool
    reason: Optional[str]
    ads_watched_today: int
    daily_limit: int
    wait_seconds: int = 0
    reset_due: bool = False

    @property
    def ads_remaining(self) -> int:
        return max(0, self.daily_limit - self.ads_watched_today)


@dataclass(frozen=True, slots=True)
class DailyBonusDecision:
    allowed: bool
    wait_ms: int
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class StreakDecision:
    allowed: bool
    current_streak: int
    next_streak: int
    next_reward: int
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class InvestmentAdDecision:
    allowed: bool
    remaining: int
    ads_watched_today: int
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class InvestmentTaskDecision:
    allowed: bool
    reason: Optional[str] = None


# -----------------------------------------------------------------------------
# Ads
# -----------------------------------------------------------------------------


def effective_ads_watched(user: UserAccount, now: datetime) -> tuple[int, bool]:
    """Counter as seen at ``now`` and whether the reset marker has elapsed."""
    if user.ad_limit_reset_time is not None and now >= user.ad_limit_reset_time:
        return 0, True
    if user.last_ad_watch is not None and utc_date(user.last_ad_watch) < utc_date(now):
        return 0, False
    return user.ads_watched_today, False


def can_watch_ad(user: UserAccount, settings: "AdTaskSettings", now: datetime) -> AdWatchDecision:
    count, reset_due = effective_ads_watched(user, now)
    limit = settings.daily_limit

    if count >= limit:
        return AdWatchDecision(
            allowed=False,
            reason=DAILY_LIMIT_REACHED,
            ads_watched_today=count,
            daily_limit=limit,
            reset_due=reset_due,
        )

    if user.last_ad_watch is not None:
        elapsed = (now - user.last_ad_watch).total_seconds()
        if elapsed < settings.cooldown_seconds:
            return AdWatchDecision(
                allowed=False,
                reason=COOLDOWN_ACTIVE,
                ads_watched_today=count,
                daily_limit=limit,
                wait_seconds=max(1, math.ceil(settings.cooldown_seconds - elapsed)),
                reset_due=reset_due,
            )

    return AdWatchDecision(
        allowed=True,
        reason=None,
        ads_watched_today=count,
        daily_limit=limit,
        reset_due=reset_due,
    )


def next_ad_state(
    user: UserAccount,
    settings: "AdTaskSettings",
    now: datetime,
    config: RewardsConfig | None = None,
) -> UserAccount:
    """Counter/timestamp state after one granted ad (balances untouched)."""
    cfg = config or RewardsConfig()
    count, _ = effective_ads_watched(user, now)
    count += 1
    reset_time = None
    if count >= settings.daily_limit:
        reset_time = now + timedelta(seconds=cfg.ad_limit_reset_seconds)
    return replace(
        user,
        ads_watched_today=count,
        last_ad_watch=now,
        ad_limit_reset_time=reset_time,
    )


def cleared_ad_state(user: UserAccount) -> UserAccount:
    return replace(user, ads_watched_today=0, ad_limit_reset_time=None)


# -----------------------------------------------------------------------------
# Daily bonus & streak
# -----------------------------------------------------------------------------


def can_claim_daily_bonus(
    user: UserAccount,
    now: datetime,
    config: RewardsConfig | None = None,
) -> DailyBonusDecision:
    cfg = config or RewardsConfig()
    if user.last_daily_bonus_at is None:
        return DailyBonusDecision(allowed=True, wait_ms=0)
    elapsed_ms = int((now - user.last_daily_bonus_at).total_seconds() * 1000)
    window_ms = cfg.daily_bonus_window_seconds * 1000
    if elapsed_ms >= window_ms:
        return DailyBonusDecision(allowed=True, wait_ms=0)
    return DailyBonusDecision(
        allowed=False,
        wait_ms=window_ms - elapsed_ms,
        reason=DAILY_BONUS_NOT_READY,
    )


def can_claim_streak(
    user: UserAccount,
    today: date,
    config: RewardsConfig | None = None,
) -> StreakDecision:
    cfg = config or RewardsConfig()
    last = user.last_daily_claim_date
    current = user.daily_streak

    if last is not None and last >= today:
        nxt = min(current + 1, cfg.streak_max_days)
        return StreakDecision(
            allowed=False,
            current_streak=current,
            next_streak=nxt,
            next_reward=nxt * cfg.streak_reward_unit,
            reason=ALREADY_CLAIMED_TODAY,
        )

    if last is not None and (today - last).days == 1:
        nxt = min(current + 1, cfg.streak_max_days)
    else:
        nxt = 1
    return StreakDecision(
        allowed=True,
        current_streak=current,
        next_streak=nxt,
        next_reward=nxt * cfg.streak_reward_unit,
    )


# -----------------------------------------------------------------------------
# Investments
# -----------------------------------------------------------------------------


def is_expired(investment: UserInvestment, now: datetime) -> bool:
    return not investment.is_active or investment.end_date <= now


def effective_investment_ads(investment: UserInvestment, now: datetime) -> int:
    if investment.last_ad_watch is None or utc_date(investment.last_ad_watch) != utc_date(now):
        return 0
    return investment.ads_watched_today


def can_watch_investment_ad(
    investment: UserInvestment,
    now: datetime,
    config: RewardsConfig | None = None,
) -> InvestmentAdDecision:
    cfg = config or RewardsConfig()
    count = effective_investment_ads(investment, now)
    if is_expired(investment, now):
        return InvestmentAdDecision(
            allowed=False,
            remaining=0,
            ads_watched_today=count,
            reason=INVESTMENT_EXPIRED,
        )
    if count >= cfg.investment_ad_daily_cap:
        return InvestmentAdDecision(
            allowed=False,
            remaining=0,
            ads_watched_today=count,
            reason=INVESTMENT_AD_LIMIT_REACHED,
        )
    return InvestmentAdDecision(
        allowed=True,
        remaining=cfg.investment_ad_daily_cap - count,
        ads_watched_today=count,
    )


def can_complete_investment_task(investment: UserInvestment, now: datetime) -> InvestmentTaskDecision:
    if is_expired(investment, now):
        return InvestmentTaskDecision(allowed=False, reason=INVESTMENT_EXPIRED)
    if investment.last_task_date is not None and utc_date(investment.last_task_date) == utc_date(now):
        return InvestmentTaskDecision(allowed=False, reason=TASK_ALREADY_COMPLETED_TODAY)
    return InvestmentTaskDecision(allowed=True)
