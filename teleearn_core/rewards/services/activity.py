# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Ad watching, the 30-minute bonus and the daily streak.

Ad state (counter, last watch, reset marker) and bonus state
(``last_daily_bonus_at``) are separate fields; the streak uses its own
typed date and counter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from teleearn_core.rewards import calculator, rate_limit
from teleearn_core.rewards.errors import (
    AlreadyClaimedTodayError,
    CooldownActiveError,
    DailyBonusNotReadyError,
    DailyLimitReachedError,
)
from teleearn_core.rewards.services.base import RewardService
from teleearn_core.rewards.store import UnitOfWork
from teleearn_core.rewards.types import Account, UserAccount, utc_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdWatchOutcome:
    reward: int
    ads_watched_today: int
    ads_remaining: int
    ad_limit_reset_time: Optional[datetime]
    user: UserAccount


@dataclass(frozen=True, slots=True)
class AdStatus:
    can_watch: bool
    reason: Optional[str]
    ads_watched_today: int
    daily_limit: int
    ads_remaining: int
    wait_seconds: int
    points_per_view: int


@dataclass(frozen=True, slots=True)
class DailyBonusOutcome:
    reward: int
    next_claim_at: datetime
    user: UserAccount


@dataclass(frozen=True, slots=True)
class StreakOutcome:
    reward: int
    streak: int
    user: UserAccount


class ActivityService(RewardService):
    # ------------------------------------------------------------------
    # Ads
    # ------------------------------------------------------------------

    def watch_ad(self, user_id: str) -> AdWatchOutcome:
        settings = self.catalog.get_ad_settings()
        now = self.now()

        def _watch(uow: UnitOfWork) -> AdWatchOutcome:
            user = self.require_user(uow)
            decision = rate_limit.can_watch_ad(user, settings, now)
            if not decision.allowed:
                logger.debug(
                    "[Ads] Rejected user=%s reason=%s count=%s",
                    user_id, decision.reason, decision.ads_watched_today,
                )
                if decision.reason == rate_limit.DAILY_LIMIT_REACHED:
                    raise DailyLimitReachedError(
                        "Daily ad limit reached",
                        daily_limit=decision.daily_limit,
                    )
                raise CooldownActiveError(decision.wait_seconds)

            reward = calculator.ad_reward(settings)
            user = self.ledger.credit(
                uow,
                Account.POINTS,
                reward,
                reason="ad_watch",
                ref=self.new_ref(user_id, "ad"),
                now=now,
            )
            user = rate_limit.next_ad_state(user, settings, now, self.cfg)
            uow.put_user(user)
            return AdWatchOutcome(
                reward=reward,
                ads_watched_today=user.ads_watched_today,
                ads_remaining=max(0, settings.daily_limit - user.ads_watched_today),
                ad_limit_reset_time=user.ad_limit_reset_time,
                user=user,
            )

        outcome = self.store.atomic(user_id, _watch)
        logger.info(
            "[Ads] user=%s reward=%s count=%s",
            user_id, outcome.reward, outcome.ads_watched_today,
        )
        return outcome

    def reset_daily_ad_limit(self, user_id: str) -> UserAccount:
        """Clear the ad counter and reset marker. Idempotent."""

        def _reset(uow: UnitOfWork) -> UserAccount:
            user = rate_limit.cleared_ad_state(self.require_user(uow))
            uow.put_user(user)
            return user

        user = self.store.atomic(user_id, _reset)
        logger.info("[Ads] Daily limit reset for user=%s", user_id)
        return user

    def get_ad_status(self, user_id: str) -> AdStatus:
        user = self.get_user(user_id)
        settings = self.catalog.get_ad_settings()
        decision = rate_limit.can_watch_ad(user, settings, self.now())
        return AdStatus(
            can_watch=decision.allowed,
            reason=decision.reason,
            ads_watched_today=decision.ads_watched_today,
            daily_limit=decision.daily_limit,
            ads_remaining=decision.ads_remaining,
            wait_seconds=decision.wait_seconds,
            points_per_view=settings.points_per_view,
        )

    # ------------------------------------------------------------------
    # 30-minute bonus
    # ------------------------------------------------------------------

    def claim_daily_bonus(self, user_id: str) -> DailyBonusOutcome:
        now = self.now()

        def _claim(uow: UnitOfWork) -> DailyBonusOutcome:
            user = self.require_user(uow)
            decision = rate_limit.can_claim_daily_bonus(user, now, self.cfg)
            if not decision.allowed:
                logger.debug("[Bonus] Rejected user=%s wait_ms=%s", user_id, decision.wait_ms)
                raise DailyBonusNotReadyError(decision.wait_ms)
            reward = self.cfg.daily_bonus_points
            user = self.ledger.credit(
                uow,
                Account.POINTS,
                reward,
                reason="daily_bonus",
                ref=self.new_ref(user_id, "daily_bonus"),
                now=now,
            )
            user = replace(user, last_daily_bonus_at=now)
            uow.put_user(user)
            return DailyBonusOutcome(
                reward=reward,
                next_claim_at=now + timedelta(seconds=self.cfg.daily_bonus_window_seconds),
                user=user,
            )

        outcome = self.store.atomic(user_id, _claim)
        logger.info("[Bonus] user=%s reward=%s", user_id, outcome.reward)
        return outcome

    # ------------------------------------------------------------------
    # Daily streak
    # ------------------------------------------------------------------

    def get_streak_status(self, user_id: str) -> rate_limit.StreakDecision:
        user = self.get_user(user_id)
        return rate_limit.can_claim_streak(user, utc_date(self.now()), self.cfg)

    def claim_daily_streak(self, user_id: str) -> StreakOutcome:
        now = self.now()
        today = utc_date(now)

        def _claim(uow: UnitOfWork) -> StreakOutcome:
            user = self.require_user(uow)
            decision = rate_limit.can_claim_streak(user, today, self.cfg)
            if not decision.allowed:
                logger.debug("[Streak] Rejected user=%s already claimed %s", user_id, today)
                raise AlreadyClaimedTodayError(
                    "Daily reward already claimed today",
                    streak=decision.current_streak,
                )
            reward = calculator.streak_reward(decision.next_streak, self.cfg)
            user = self.ledger.credit(
                uow,
                Account.POINTS,
                reward,
                reason="daily_streak",
                ref=f"{user_id}:streak:{today.isoformat()}",
                now=now,
                meta={"streak": decision.next_streak},
            )
            user = replace(user, daily_streak=decision.next_streak, last_daily_claim_date=today)
            uow.put_user(user)
            return StreakOutcome(reward=reward, streak=decision.next_streak, user=user)

        outcome = self.store.atomic(user_id, _claim)
        logger.info("[Streak] user=%s streak=%s reward=%s", user_id, outcome.streak, outcome.reward)
        return outcome
