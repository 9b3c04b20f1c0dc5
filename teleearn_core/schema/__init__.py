# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 TeleEarn Contributors
"""
TeleEarn Core Schema Module

- Catalog entries (ad settings, tasks, quests, packages, exchange rates)
- Request payload validation
"""

from teleearn_core.schema.catalog import (
    DEFAULT_AD_SETTINGS,
    AdTaskSettings,
    AppTask,
    ExchangeRate,
    InvestmentPackage,
    LinkTask,
    Quest,
)
from teleearn_core.schema.requests import (
    CoinConversionRequest,
    DepositCreateRequest,
    ExchangeRequest,
    FiatCurrency,
    RegisterUserRequest,
    TaskCompletionRequest,
    TransferToMainRequest,
    WithdrawalCreateRequest,
    parse_request,
)
from teleearn_core.schema.serialization import SchemaModel, dump_schema, load_schema

__all__ = [
    "SchemaModel",
    "dump_schema",
    "load_schema",
    "DEFAULT_AD_SETTINGS",
    "AdTaskSettings",
    "AppTask",
    "LinkTask",
    "Quest",
    "InvestmentPackage",
    "ExchangeRate",
    "FiatCurrency",
    "TaskCompletionRequest",
    "ExchangeRequest",
    "CoinConversionRequest",
    "TransferToMainRequest",
    "WithdrawalCreateRequest",
    "DepositCreateRequest",
    "RegisterUserRequest",
    "parse_request",
]
