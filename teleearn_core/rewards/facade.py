# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from typing import List, Optional

from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.ledger import BalanceLedger, LedgerEntry
from teleearn_core.rewards.rate_limit import StreakDecision
from teleearn_core.rewards.services.activity import (
    ActivityService,
    AdStatus,
    AdWatchOutcome,
    DailyBonusOutcome,
    StreakOutcome,
)
from teleearn_core.rewards.services.base import Clock
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
from teleearn_core.rewards.services.referrals import (
    ReferralOutcome,
    ReferralService,
    RegistrationOutcome,
)
from teleearn_core.rewards.services.tasks import QuestOutcome, QuestStatus, TaskOutcome, TaskService
from teleearn_core.rewards.services.wallet import DepositOutcome, WalletService, WithdrawalOutcome
from teleearn_core.rewards.store import CatalogStore, RewardStore
from teleearn_core.rewards.types import UserAccount, UserInvestment


class RewardsFacade:
    """Entry point for the HTTP layer. Every operation returns authoritative post-mutation state."""

    def __init__(
        self,
        *,
        store: RewardStore,
        catalog: CatalogStore,
        config: RewardsConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._config = config or RewardsConfig()
        ledger = BalanceLedger()
        wiring = dict(ledger=ledger, clock=clock)
        self.activity = ActivityService(store, catalog, self._config, **wiring)
        self.tasks = TaskService(store, catalog, self._config, **wiring)
        self.exchange = ExchangeService(store, catalog, self._config, **wiring)
        self.investments = InvestmentService(store, catalog, self._config, **wiring)
        self.wallet = WalletService(store, catalog, self._config, **wiring)
        self.referrals = ReferralService(store, catalog, self._config, **wiring)

    @property
    def config(self) -> RewardsConfig:
        return self._config

    # Users

    def register_user(
        self,
        *,
        external_id: str,
        username: str = "",
        first_name: str = "",
        referral_code: Optional[str] = None,
    ) -> RegistrationOutcome:
        return self.referrals.register_user(
            external_id,
            username=username,
            first_name=first_name,
            referral_code=referral_code,
        )

    def get_user(self, *, user_id: str) -> UserAccount:
        return self.activity.get_user(user_id)

    def ledger_history(self, *, user_id: str, limit: int = 50) -> List[LedgerEntry]:
        self.activity.get_user(user_id)
        return self._store.list_ledger_entries(user_id, limit)

    # Ads, bonus, streak

    def watch_ad(self, *, user_id: str) -> AdWatchOutcome:
        return self.activity.watch_ad(user_id)

    def reset_daily_ad_limit(self, *, user_id: str) -> UserAccount:
        return self.activity.reset_daily_ad_limit(user_id)

    def get_ad_status(self, *, user_id: str) -> AdStatus:
        return self.activity.get_ad_status(user_id)

    def claim_daily_bonus(self, *, user_id: str) -> DailyBonusOutcome:
        return self.activity.claim_daily_bonus(user_id)

    def get_streak_status(self, *, user_id: str) -> StreakDecision:
        return self.activity.get_streak_status(user_id)

    def claim_daily_streak(self, *, user_id: str) -> StreakOutcome:
        return self.activity.claim_daily_streak(user_id)

    # Tasks & quests

    def complete_task(self, *, user_id: str, task_type: str, task_id: int) -> TaskOutcome:
        return self.tasks.complete_task(user_id, task_type, task_id)

    def claim_quest(self, *, user_id: str, quest_id: int) -> QuestOutcome:
        return self.tasks.claim_quest(user_id, quest_id)

    def get_quest_status(self, *, user_id: str, quest_id: int) -> QuestStatus:
        return self.tasks.get_quest_status(user_id, quest_id)

    # Exchange

    def quote_exchange(self, *, points: int, currency: str) -> ExchangeQuote:
        return self.exchange.quote(points, currency)

    def exchange_points(self, *, user_id: str, points: int, currency: str) -> ExchangeOutcome:
        return self.exchange.exchange_points(user_id, points, currency)

    def convert_points_to_coins(self, *, user_id: str, points: int) -> CoinConversionOutcome:
        return self.exchange.convert_to_coins(user_id, points)

    # Investments

    def subscribe_investment(self, *, user_id: str, package_id: int) -> SubscriptionOutcome:
        return self.investments.subscribe(user_id, package_id)

    def complete_investment_task(self, *, user_id: str, investment_id: str) -> InvestmentTaskOutcome:
        return self.investments.complete_task(user_id, investment_id)

    def watch_investment_ad(self, *, user_id: str, investment_id: str) -> InvestmentAdOutcome:
        return self.investments.watch_ad(user_id, investment_id)

    def list_investments(self, *, user_id: str, active_only: bool = False) -> List[UserInvestment]:
        return self.investments.list_investments(user_id, active_only=active_only)

    def deactivate_investment(self, *, user_id: str, investment_id: str) -> UserInvestment:
        return self.investments.deactivate(user_id, investment_id)

    def transfer_investment_to_main(self, *, user_id: str, amount: int, currency: str) -> TransferOutcome:
        return self.investments.transfer_to_main(user_id, amount, currency)

    # Withdrawals & deposits

    def create_withdrawal(
        self,
        *,
        user_id: str,
        amount: int,
        currency: str,
        method: str,
        account_details: Optional[str] = None,
    ) -> WithdrawalOutcome:
        return self.wallet.create_withdrawal(
            user_id,
            amount=amount,
            currency=currency,
            method=method,
            account_details=account_details,
        )

    def approve_withdrawal(self, *, request_id: str) -> WithdrawalOutcome:
        return self.wallet.approve_withdrawal(request_id)

    def reject_withdrawal(self, *, request_id: str) -> WithdrawalOutcome:
        return self.wallet.reject_withdrawal(request_id)

    def create_deposit(
        self,
        *,
        user_id: str,
        amount: int,
        currency: str,
        method: str,
        deposit_type: str = "investment",
        account_details: Optional[str] = None,
        transaction_proof: Optional[str] = None,
    ) -> DepositOutcome:
        return self.wallet.create_deposit(
            user_id,
            amount=amount,
            currency=currency,
            method=method,
            deposit_type=deposit_type,
            account_details=account_details,
            transaction_proof=transaction_proof,
        )

    def approve_deposit(self, *, request_id: str) -> DepositOutcome:
        return self.wallet.approve_deposit(request_id)

    def reject_deposit(self, *, request_id: str) -> DepositOutcome:
        return self.wallet.reject_deposit(request_id)

    # Referrals

    def create_referral(self, *, referrer_id: str, referred_id: str) -> ReferralOutcome:
        return self.referrals.create_referral(referrer_id, referred_id)
