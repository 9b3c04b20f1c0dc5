# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# Catalog-dependent modules (store, services, adapters, facade) are imported
# from their own modules; teleearn_core.schema imports this package.
from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.config_loader import load_rewards_config
from teleearn_core.rewards.errors import RewardError
from teleearn_core.rewards.ledger import (
    BalanceDelta,
    BalanceLedger,
    LedgerEntry,
    LedgerEntryType,
    apply_delta,
    build_idempotency_key,
)
from teleearn_core.rewards.types import (
    Account,
    Currency,
    DepositRequest,
    DepositType,
    PackageType,
    QuestProgress,
    QuestType,
    Referral,
    RequestStatus,
    TaskCompletion,
    TaskType,
    UserAccount,
    UserInvestment,
    WithdrawalRequest,
    deposit_account,
    investment_account,
    main_account,
)

__all__ = [
    "RewardsConfig",
    "load_rewards_config",
    "RewardError",
    "BalanceDelta",
    "BalanceLedger",
    "LedgerEntry",
    "LedgerEntryType",
    "apply_delta",
    "build_idempotency_key",
    "Account",
    "Currency",
    "DepositRequest",
    "DepositType",
    "PackageType",
    "QuestProgress",
    "QuestType",
    "Referral",
    "RequestStatus",
    "TaskCompletion",
    "TaskType",
    "UserAccount",
    "UserInvestment",
    "WithdrawalRequest",
    "deposit_account",
    "investment_account",
    "main_account",
]
