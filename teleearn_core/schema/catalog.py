# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 TeleEarn Contributors
"""
Read-only catalog entries: ad settings, tasks, quests, packages, rates.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import Field

from teleearn_core.rewards.types import Currency, PackageType, QuestType
from teleearn_core.schema.serialization import SchemaModel


class AdTaskSettings(SchemaModel):
    """Ad reward settings. Defaults apply when no active settings exist."""

    points_per_view: int = Field(default=500, ge=0)
    daily_limit: int = Field(default=50, ge=0)
    cooldown_seconds: int = Field(default=15, ge=0)
    is_active: bool = True


DEFAULT_AD_SETTINGS = AdTaskSettings()


class AppTask(SchemaModel):
    id: int
    name: str = ""
    reward: int = Field(default=100, ge=0)
    is_active: bool = True


class LinkTask(SchemaModel):
    id: int
    title: str = ""
    reward: int = Field(default=50, ge=0)
    is_active: bool = True


class Quest(SchemaModel):
    id: int
    title: str = ""
    type: QuestType
    target: int = Field(ge=1)
    reward: int = Field(ge=0)
    is_active: bool = True


class InvestmentPackage(SchemaModel):
    id: int
    title: str = ""
    type: PackageType
    price: int = Field(ge=0)
    number_of_days: int = Field(ge=1)
    reward_per_task: int = Field(ge=0)
    reward_currency: Currency
    # Stored for display; the ad share uses the configured ratio.
    ad_reward_percentage: int = Field(default=10, ge=0, le=100)
    is_active: bool = True


class ExchangeRate(SchemaModel):
    from_currency: Currency = Currency.POINTS
    to_currency: Currency
    rate: Decimal = Field(gt=0)
    is_active: bool = True
