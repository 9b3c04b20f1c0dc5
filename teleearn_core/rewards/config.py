# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class RewardsConfig:
    """Business constants of the reward engine."""

    # Firestore collections
    user_collection: str = "users"
    task_completion_collection: str = "task_completions"
    quest_progress_collection: str = "quest_progress"
    referral_collection: str = "referrals"
    investment_collection: str = "user_investments"
    withdrawal_collection: str = "withdrawal_requests"
    deposit_collection: str = "deposit_requests"
    ledger_collection: str = "reward_ledger"

    # Catalog collections
    ad_settings_collection: str = "ad_settings"
    app_task_collection: str = "app_tasks"
    link_task_collection: str = "link_tasks"
    quest_collection: str = "quests"
    package_collection: str = "investment_packages"
    exchange_rate_collection: str = "exchange_rates"

    # Ads: marker set when the daily limit is reached
    ad_limit_reset_seconds: int = 60

    # Task rewards when the task record is missing
    app_task_fallback_reward: int = 100
    link_task_fallback_reward: int = 50

    # Daily streak
    streak_max_days: int = 7
    streak_reward_unit: int = 100

    # 30-minute bonus
    daily_bonus_points: int = 100
    daily_bonus_window_seconds: int = 30 * 60

    # Investments
    investment_ad_daily_cap: int = 10
    investment_ad_share_ratio: Decimal = Decimal("0.10")

    # Exchange
    min_exchange_points: int = 500
    fallback_usd_rate: Decimal = Decimal("0.0001")
    fallback_egp_rate: Decimal = Decimal("0.005")

    # Referrals
    referral_bonus_points: int = 1000
    welcome_bonus_points: int = 500
    referral_code_length: int = 6
