# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from typing import Callable, List, Optional, Protocol, TypeVar, runtime_checkable

from teleearn_core.rewards.ledger import LedgerEntry
from teleearn_core.rewards.types import (
    DepositRequest,
    QuestProgress,
    Referral,
    TaskCompletion,
    TaskType,
    UserAccount,
    UserInvestment,
    WithdrawalRequest,
)
from teleearn_core.schema.catalog import (
    AdTaskSettings,
    AppTask,
    ExchangeRate,
    InvestmentPackage,
    LinkTask,
    Quest,
)

T = TypeVar("T")


@runtime_checkable
class UnitOfWork(Protocol):
    """Reads and staged writes for one user, committed together or not at all.

    Reads observe writes staged earlier in the same unit of work.
    """

    user_id: str

    def get_user(self) -> UserAccount | None:
        ...

    def put_user(self, user: UserAccount) -> None:
        ...

    def get_task_completion(self, task_type: TaskType, task_id: int) -> TaskCompletion | None:
        ...

    def add_task_completion(self, completion: TaskCompletion) -> None:
        ...

    def count_task_completions(self) -> int:
        ...

    def get_quest_progress(self, quest_id: int) -> QuestProgress | None:
        ...

    def put_quest_progress(self, progress: QuestProgress) -> None:
        ...

    def get_referral(self, referred_id: str) -> Referral | None:
        """Referral made by this user (the referrer) for ``referred_id``."""
        ...

    def add_referral(self, referral: Referral) -> None:
        ...

    def count_referrals(self) -> int:
        ...

    def get_investment(self, investment_id: str) -> UserInvestment | None:
        ...

    def list_investments(self) -> List[UserInvestment]:
        ...

    def put_investment(self, investment: UserInvestment) -> None:
        ...

    def get_withdrawal(self, request_id: str) -> WithdrawalRequest | None:
        ...

    def put_withdrawal(self, request: WithdrawalRequest) -> None:
        ...

    def get_deposit(self, request_id: str) -> DepositRequest | None:
        ...

    def put_deposit(self, request: DepositRequest) -> None:
        ...

    def get_ledger_entry(self, idempotency_key: str) -> LedgerEntry | None:
        ...

    def append_ledger_entry(self, entry: LedgerEntry) -> None:
        ...


@runtime_checkable
class RewardStore(Protocol):
    def atomic(self, user_id: str, fn: Callable[[UnitOfWork], T]) -> T:
        """Run ``fn`` serialized per user; commit its writes only if it returns."""
        ...

    def get_user(self, user_id: str) -> UserAccount | None:
        ...

    def find_user_by_external_id(self, external_id: str) -> UserAccount | None:
        ...

    def find_user_by_referral_code(self, code: str) -> UserAccount | None:
        ...

    def create_user(self, user: UserAccount) -> UserAccount:
        ...

    def find_withdrawal_owner(self, request_id: str) -> Optional[str]:
        ...

    def find_deposit_owner(self, request_id: str) -> Optional[str]:
        ...

    def list_ledger_entries(self, user_id: str, limit: int = 50) -> List[LedgerEntry]:
        ...


@runtime_checkable
class CatalogStore(Protocol):
    """Read-only catalog owned by an administrative collaborator."""

    def get_ad_settings(self) -> AdTaskSettings:
        """Active settings, or the defaults when none are active."""
        ...

    def get_app_task(self, task_id: int) -> AppTask | None:
        ...

    def get_link_task(self, task_id: int) -> LinkTask | None:
        ...

    def get_quest(self, quest_id: int) -> Quest | None:
        ...

    def get_investment_package(self, package_id: int) -> InvestmentPackage | None:
        ...

    def list_exchange_rates(self) -> List[ExchangeRate]:
        ...
