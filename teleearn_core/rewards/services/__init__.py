# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from teleearn_core.rewards.services.base import RewardService
from teleearn_core.rewards.services.activity import (
    ActivityService,
    AdStatus,
    AdWatchOutcome,
    DailyBonusOutcome,
    StreakOutcome,
)
from teleearn_core.rewards.services.tasks import (
    QuestOutcome,
    QuestStatus,
    TaskOutcome,
    TaskService,
)
from teleearn_core.rewards.services.exchange import (
    CoinConversionOutcome,
    ExchangeOutcome,
    ExchangeQuote,
    ExchangeService,
)
from teleearn_core.rewards.services.investments import (
    InvestmentAdOutcome,
    InvestmentService,
    InvestmentTaskOutcome,
    SubscriptionOutcome,
    TransferOutcome,
)
from teleearn_core.rewards.services.wallet import (
    DepositOutcome,
    WalletService,
    WithdrawalOutcome,
)
from teleearn_core.rewards.services.referrals import (
    ReferralOutcome,
    ReferralService,
    RegistrationOutcome,
)

__all__ = [
    "RewardService",
    # Ads, bonus, streak
    "ActivityService",
    "AdStatus",
    "AdWatchOutcome",
    "DailyBonusOutcome",
    "StreakOutcome",
    # Tasks & quests
    "TaskService",
    "TaskOutcome",
    "QuestOutcome",
    "QuestStatus",
    # Exchange
    "ExchangeService",
    "ExchangeQuote",
    "ExchangeOutcome",
    "CoinConversionOutcome",
    # Investments
    "InvestmentService",
    "SubscriptionOutcome",
    "InvestmentTaskOutcome",
    "InvestmentAdOutcome",
    "TransferOutcome",
    # Wallet
    "WalletService",
    "WithdrawalOutcome",
    "DepositOutcome",
    # Referrals
    "ReferralService",
    "ReferralOutcome",
    "RegistrationOutcome",
]
