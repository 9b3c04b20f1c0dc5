# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from teleearn_core.rewards.errors import DuplicateUserError, LedgerConsistencyError, RewardValidationError
from teleearn_core.rewards.ledger import LedgerEntry
from teleearn_core.rewards.store import CatalogStore, RewardStore, UnitOfWork
from teleearn_core.rewards.types import (
    DepositRequest,
    QuestProgress,
    Referral,
    TaskCompletion,
    TaskType,
    UserAccount,
    UserInvestment,
    WithdrawalRequest,
    task_completion_key,
)
from teleearn_core.schema.catalog import (
    DEFAULT_AD_SETTINGS,
    AdTaskSettings,
    AppTask,
    ExchangeRate,
    InvestmentPackage,
    LinkTask,
    Quest,
)

T = TypeVar("T")

USERS = "users"
TASK_COMPLETIONS = "task_completions"
QUEST_PROGRESS = "quest_progress"
REFERRALS = "referrals"
INVESTMENTS = "investments"
WITHDRAWALS = "withdrawals"
DEPOSITS = "deposits"
LEDGER = "ledger"

_RECORD_TYPES = {
    USERS: UserAccount,
    TASK_COMPLETIONS: TaskCompletion,
    QUEST_PROGRESS: QuestProgress,
    REFERRALS: Referral,
    INVESTMENTS: UserInvestment,
    WITHDRAWALS: WithdrawalRequest,
    DEPOSITS: DepositRequest,
    LEDGER: LedgerEntry,
}


def _record_key(collection: str, record: Any) -> str:
    if collection == USERS:
        return record.user_id
    if collection == TASK_COMPLETIONS:
        return record.key
    if collection == QUEST_PROGRESS:
        return f"{record.user_id}:{record.quest_id}"
    if collection == REFERRALS:
        return f"{record.referrer_id}:{record.referred_id}"
    if collection == INVESTMENTS:
        return record.investment_id
    if collection in (WITHDRAWALS, DEPOSITS):
        return record.request_id
    return record.idempotency_key


class _MemoryUnitOfWork(UnitOfWork):
    def __init__(self, store: "InMemoryRewardStore", user_id: str) -> None:
        self.user_id = user_id
        self._store = store
        self._staged: Dict[str, Dict[str, Any]] = {name: {} for name in _RECORD_TYPES}

    def _read(self, collection: str, key: str) -> Any:
        staged = self._staged[collection]
        if key in staged:
            return staged[key]
        return self._store._read(collection, key)

    def _scan(self, collection: str, predicate: Callable[[Any], bool]) -> List[Any]:
        merged = {
            _record_key(collection, r): r
            for r in self._store._scan(collection, predicate)
        }
        for key, record in self._staged[collection].items():
            if predicate(record):
                merged[key] = record
        return list(merged.values())

    def _owned(self, record: Any) -> Any:
        if record is None or getattr(record, "user_id", None) != self.user_id:
            return None
        return record

    def get_user(self) -> UserAccount | None:
        return self._read(USERS, self.user_id)

    def put_user(self, user: UserAccount) -> None:
        self._staged[USERS][self.user_id] = user

    def get_task_completion(self, task_type: TaskType, task_id: int) -> TaskCompletion | None:
        return self._read(TASK_COMPLETIONS, task_completion_key(self.user_id, task_type, task_id))

    def add_task_completion(self, completion: TaskCompletion) -> None:
        if self.get_task_completion(completion.task_type, completion.task_id) is not None:
            raise LedgerConsistencyError("Task completion already exists", key=completion.key)
        self._staged[TASK_COMPLETIONS][completion.key] = completion

    def count_task_completions(self) -> int:
        return len(self._scan(TASK_COMPLETIONS, lambda r: r.user_id == self.user_id))

    def get_quest_progress(self, quest_id: int) -> QuestProgress | None:
        return self._read(QUEST_PROGRESS, f"{self.user_id}:{quest_id}")

    def put_quest_progress(self, progress: QuestProgress) -> None:
        self._staged[QUEST_PROGRESS][f"{self.user_id}:{progress.quest_id}"] = progress

    def get_referral(self, referred_id: str) -> Referral | None:
        return self._read(REFERRALS, f"{self.user_id}:{referred_id}")

    def add_referral(self, referral: Referral) -> None:
        self._staged[REFERRALS][_record_key(REFERRALS, referral)] = referral

    def count_referrals(self) -> int:
        return len(self._scan(REFERRALS, lambda r: r.referrer_id == self.user_id))

    def get_investment(self, investment_id: str) -> UserInvestment | None:
        return self._owned(self._read(INVESTMENTS, investment_id))

    def list_investments(self) -> List[UserInvestment]:
        items = self._scan(INVESTMENTS, lambda r: r.user_id == self.user_id)
        return sorted(items, key=lambda r: r.start_date)

    def put_investment(self, investment: UserInvestment) -> None:
        self._staged[INVESTMENTS][investment.investment_id] = investment

    def get_withdrawal(self, request_id: str) -> WithdrawalRequest | None:
        return self._owned(self._read(WITHDRAWALS, request_id))

    def put_withdrawal(self, request: WithdrawalRequest) -> None:
        self._staged[WITHDRAWALS][request.request_id] = request

    def get_deposit(self, request_id: str) -> DepositRequest | None:
        return self._owned(self._read(DEPOSITS, request_id))

    def put_deposit(self, request: DepositRequest) -> None:
        self._staged[DEPOSITS][request.request_id] = request

    def get_ledger_entry(self, idempotency_key: str) -> LedgerEntry | None:
        return self._read(LEDGER, idempotency_key)

    def append_ledger_entry(self, entry: LedgerEntry) -> None:
        if self.get_ledger_entry(entry.idempotency_key) is not None:
            raise LedgerConsistencyError(
                "Ledger entry already exists for idempotency key.",
                key=entry.idempotency_key,
            )
        self._staged[LEDGER][entry.idempotency_key] = entry

    def commit(self) -> None:
        self._store._commit(self._staged)


class InMemoryRewardStore(RewardStore):
    """Process-local store. Serializes units of work with one lock per user."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {name: {} for name in _RECORD_TYPES}
        self._data_lock = threading.RLock()
        self._user_locks: Dict[str, threading.Lock] = {}
        self._user_locks_guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._user_locks_guard:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._user_locks[user_id] = lock
            return lock

    def _read(self, collection: str, key: str) -> Any:
        with self._data_lock:
            return self._data[collection].get(key)

    def _scan(self, collection: str, predicate: Callable[[Any], bool]) -> List[Any]:
        with self._data_lock:
            return [r for r in self._data[collection].values() if predicate(r)]

    def _commit(self, staged: Dict[str, Dict[str, Any]]) -> None:
        with self._data_lock:
            for collection, records in staged.items():
                self._data[collection].update(records)

    def atomic(self, user_id: str, fn: Callable[[UnitOfWork], T]) -> T:
        with self._lock_for(user_id):
            uow = _MemoryUnitOfWork(self, user_id)
            result = fn(uow)
            uow.commit()
            return result

    def get_user(self, user_id: str) -> UserAccount | None:
        return self._read(USERS, user_id)

    def find_user_by_external_id(self, external_id: str) -> UserAccount | None:
        found = self._scan(USERS, lambda u: u.external_id == external_id)
        return found[0] if found else None

    def find_user_by_referral_code(self, code: str) -> UserAccount | None:
        found = self._scan(USERS, lambda u: u.referral_code == code)
        return found[0] if found else None

    def create_user(self, user: UserAccount) -> UserAccount:
        with self._data_lock:
            users = self._data[USERS]
            if user.user_id in users:
                raise DuplicateUserError(f"User {user.user_id} already exists")
            if any(u.external_id == user.external_id for u in users.values()):
                raise DuplicateUserError(f"External id {user.external_id} already registered")
            if any(u.referral_code == user.referral_code for u in users.values()):
                raise RewardValidationError("Referral code already in use")
            users[user.user_id] = user
        return user

    def find_withdrawal_owner(self, request_id: str) -> Optional[str]:
        record = self._read(WITHDRAWALS, request_id)
        return record.user_id if record else None

    def find_deposit_owner(self, request_id: str) -> Optional[str]:
        record = self._read(DEPOSITS, request_id)
        return record.user_id if record else None

    def list_ledger_entries(self, user_id: str, limit: int = 50) -> List[LedgerEntry]:
        entries = self._scan(LEDGER, lambda e: e.user_id == user_id)
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries[:limit]

    # Snapshot / restore

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        with self._data_lock:
            return {
                collection: [r.to_dict() for r in records.values()]
                for collection, records in self._data.items()
            }

    @classmethod
    def restore(cls, data: Dict[str, Iterable[Dict[str, Any]]] | None) -> "InMemoryRewardStore":
        store = cls()
        for collection, record_cls in _RECORD_TYPES.items():
            for raw in (data or {}).get(collection, []):
                record = record_cls.from_dict(raw)
                store._data[collection][_record_key(collection, record)] = record
        return store


class InMemoryCatalog(CatalogStore):
    def __init__(
        self,
        *,
        ad_settings: AdTaskSettings | None = None,
        app_tasks: Iterable[AppTask] = (),
        link_tasks: Iterable[LinkTask] = (),
        quests: Iterable[Quest] = (),
        packages: Iterable[InvestmentPackage] = (),
        exchange_rates: Iterable[ExchangeRate] = (),
    ) -> None:
        self._ad_settings = ad_settings
        self._app_tasks = {t.id: t for t in app_tasks}
        self._link_tasks = {t.id: t for t in link_tasks}
        self._quests = {q.id: q for q in quests}
        self._packages = {p.id: p for p in packages}
        self._rates = list(exchange_rates)

    def get_ad_settings(self) -> AdTaskSettings:
        if self._ad_settings is None or not self._ad_settings.is_active:
            return DEFAULT_AD_SETTINGS
        return self._ad_settings

    def get_app_task(self, task_id: int) -> AppTask | None:
        return self._app_tasks.get(task_id)

    def get_link_task(self, task_id: int) -> LinkTask | None:
        return self._link_tasks.get(task_id)

    def get_quest(self, quest_id: int) -> Quest | None:
        quest = self._quests.get(quest_id)
        return quest if quest is not None and quest.is_active else None

    def get_investment_package(self, package_id: int) -> InvestmentPackage | None:
        package = self._packages.get(package_id)
        return package if package is not None and package.is_active else None

    def list_exchange_rates(self) -> List[ExchangeRate]:
        return list(self._rates)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "InMemoryCatalog":
        data = data or {}
        settings = data.get("ad_settings")
        return cls(
            ad_settings=AdTaskSettings.from_dict(settings) if settings else None,
            app_tasks=[AppTask.from_dict(t) for t in data.get("app_tasks", [])],
            link_tasks=[LinkTask.from_dict(t) for t in data.get("link_tasks", [])],
            quests=[Quest.from_dict(q) for q in data.get("quests", [])],
            packages=[InvestmentPackage.from_dict(p) for p in data.get("investment_packages", [])],
            exchange_rates=[ExchangeRate.from_dict(r) for r in data.get("exchange_rates", [])],
        )
