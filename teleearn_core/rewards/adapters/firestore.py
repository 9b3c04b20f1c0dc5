# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from firebase_admin import firestore
from google.api_core.exceptions import Conflict

from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.errors import DuplicateUserError, LedgerConsistencyError
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

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _snapshot_to(record_cls: Type[Any], snapshot: Any) -> Any:
    if snapshot is None or not snapshot.exists:
        return None
    return record_cls.from_dict(snapshot.to_dict() or {})


class _FirestoreUnitOfWork(UnitOfWork):
    """Transactional reads; writes buffered until the transaction body returns.

    Firestore requires every read to precede every write in a transaction,
    so staged records are served back from ``_pending`` and flushed last.
    """

    def __init__(self, store: "FirestoreRewardStore", transaction: Any, user_id: str) -> None:
        self.user_id = user_id
        self._store = store
        self._tx = transaction
        self._pending: Dict[Tuple[str, str], Any] = {}

    def _get(self, collection: str, doc_id: str, record_cls: Type[Any]) -> Any:
        if (collection, doc_id) in self._pending:
            return self._pending[(collection, doc_id)]
        ref = self._store._db.collection(collection).document(doc_id)
        return _snapshot_to(record_cls, ref.get(transaction=self._tx))

    def _query(self, collection: str, field: str, value: Any, record_cls: Type[Any]) -> List[Any]:
        query = self._store._db.collection(collection).where(field, "==", value)
        found: Dict[str, Any] = {}
        for snapshot in query.stream(transaction=self._tx):
            found[snapshot.id] = record_cls.from_dict(snapshot.to_dict() or {})
        for (name, doc_id), record in self._pending.items():
            if name == collection and getattr(record, field, None) == value:
                found[doc_id] = record
        return list(found.values())

    def _put(self, collection: str, doc_id: str, record: Any) -> None:
        self._pending[(collection, doc_id)] = record

    def _owned(self, record: Any) -> Any:
        if record is None or record.user_id != self.user_id:
            return None
        return record

    @property
    def _cfg(self) -> RewardsConfig:
        return self._store._config

    def get_user(self) -> UserAccount | None:
        return self._get(self._cfg.user_collection, self.user_id, UserAccount)

    def put_user(self, user: UserAccount) -> None:
        self._put(self._cfg.user_collection, self.user_id, user)

    def get_task_completion(self, task_type: TaskType, task_id: int) -> TaskCompletion | None:
        key = task_completion_key(self.user_id, task_type, task_id)
        return self._get(self._cfg.task_completion_collection, key, TaskCompletion)

    def add_task_completion(self, completion: TaskCompletion) -> None:
        if self.get_task_completion(completion.task_type, completion.task_id) is not None:
            raise LedgerConsistencyError("Task completion already exists", key=completion.key)
        self._put(self._cfg.task_completion_collection, completion.key, completion)

    def count_task_completions(self) -> int:
        return len(self._query(self._cfg.task_completion_collection, "user_id", self.user_id, TaskCompletion))

    def get_quest_progress(self, quest_id: int) -> QuestProgress | None:
        return self._get(self._cfg.quest_progress_collection, f"{self.user_id}:{quest_id}", QuestProgress)

    def put_quest_progress(self, progress: QuestProgress) -> None:
        self._put(self._cfg.quest_progress_collection, f"{self.user_id}:{progress.quest_id}", progress)

    def get_referral(self, referred_id: str) -> Referral | None:
        return self._get(self._cfg.referral_collection, f"{self.user_id}:{referred_id}", Referral)

    def add_referral(self, referral: Referral) -> None:
        doc_id = f"{referral.referrer_id}:{referral.referred_id}"
        self._put(self._cfg.referral_collection, doc_id, referral)

    def count_referrals(self) -> int:
        return len(self._query(self._cfg.referral_collection, "referrer_id", self.user_id, Referral))

    def get_investment(self, investment_id: str) -> UserInvestment | None:
        return self._owned(self._get(self._cfg.investment_collection, investment_id, UserInvestment))

    def list_investments(self) -> List[UserInvestment]:
        items = self._query(self._cfg.investment_collection, "user_id", self.user_id, UserInvestment)
        return sorted(items, key=lambda r: r.start_date)

    def put_investment(self, investment: UserInvestment) -> None:
        self._put(self._cfg.investment_collection, investment.investment_id, investment)

    def get_withdrawal(self, request_id: str) -> WithdrawalRequest | None:
        return self._owned(self._get(self._cfg.withdrawal_collection, request_id, WithdrawalRequest))

    def put_withdrawal(self, request: WithdrawalRequest) -> None:
        self._put(self._cfg.withdrawal_collection, request.request_id, request)

    def get_deposit(self, request_id: str) -> DepositRequest | None:
        return self._owned(self._get(self._cfg.deposit_collection, request_id, DepositRequest))

    def put_deposit(self, request: DepositRequest) -> None:
        self._put(self._cfg.deposit_collection, request.request_id, request)

    def get_ledger_entry(self, idempotency_key: str) -> LedgerEntry | None:
        return self._get(self._cfg.ledger_collection, idempotency_key, LedgerEntry)

    def append_ledger_entry(self, entry: LedgerEntry) -> None:
        if self.get_ledger_entry(entry.idempotency_key) is not None:
            raise LedgerConsistencyError(
                "Ledger entry already exists for idempotency key.",
                key=entry.idempotency_key,
            )
        self._put(self._cfg.ledger_collection, entry.idempotency_key, entry)

    def flush(self) -> None:
        for (collection, doc_id), record in self._pending.items():
            ref = self._store._db.collection(collection).document(doc_id)
            self._tx.set(ref, record.to_dict())


class FirestoreRewardStore(RewardStore):
    def __init__(self, db: firestore.Client, *, config: RewardsConfig | None = None) -> None:
        self._db = db
        self._config = config or RewardsConfig()
        self._users = self._db.collection(self._config.user_collection)
        self._ledger = self._db.collection(self._config.ledger_collection)

    def atomic(self, user_id: str, fn: Callable[[UnitOfWork], T]) -> T:
        transaction = self._db.transaction()

        @firestore.transactional
        def _run(transaction):  # type: ignore[no-untyped-def]
            uow = _FirestoreUnitOfWork(self, transaction, user_id)
            result = fn(uow)
            uow.flush()
            return result

        return _run(transaction)

    def get_user(self, user_id: str) -> UserAccount | None:
        return _snapshot_to(UserAccount, self._users.document(user_id).get())

    def _find_user(self, field: str, value: str) -> UserAccount | None:
        for snapshot in self._users.where(field, "==", value).limit(1).stream():
            return UserAccount.from_dict(snapshot.to_dict() or {})
        return None

    def find_user_by_external_id(self, external_id: str) -> UserAccount | None:
        return self._find_user("external_id", external_id)

    def find_user_by_referral_code(self, code: str) -> UserAccount | None:
        return self._find_user("referral_code", code)

    def create_user(self, user: UserAccount) -> UserAccount:
        try:
            self._users.document(user.user_id).create(user.to_dict())
        except Conflict as exc:
            raise DuplicateUserError(f"User {user.user_id} already exists") from exc
        logger.info("[Firestore] Created user %s", user.user_id)
        return user

    def _find_owner(self, collection: str, request_id: str) -> Optional[str]:
        snapshot = self._db.collection(collection).document(request_id).get()
        if not snapshot.exists:
            return None
        return (snapshot.to_dict() or {}).get("user_id")

    def find_withdrawal_owner(self, request_id: str) -> Optional[str]:
        return self._find_owner(self._config.withdrawal_collection, request_id)

    def find_deposit_owner(self, request_id: str) -> Optional[str]:
        return self._find_owner(self._config.deposit_collection, request_id)

    def list_ledger_entries(self, user_id: str, limit: int = 50) -> List[LedgerEntry]:
        query = (
            self._ledger.where("user_id", "==", user_id)
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        return [LedgerEntry.from_dict(s.to_dict() or {}) for s in query.stream()]


class FirestoreCatalog(CatalogStore):
    def __init__(self, db: firestore.Client, *, config: RewardsConfig | None = None) -> None:
        self._db = db
        self._config = config or RewardsConfig()

    def _get(self, collection: str, doc_id: int, model_cls: Type[Any]) -> Any:
        snapshot = self._db.collection(collection).document(str(doc_id)).get()
        if not snapshot.exists:
            return None
        data = {"id": doc_id, **(snapshot.to_dict() or {})}
        return model_cls.from_dict(data)

    def get_ad_settings(self) -> AdTaskSettings:
        query = (
            self._db.collection(self._config.ad_settings_collection)
            .where("is_active", "==", True)
            .limit(1)
        )
        for snapshot in query.stream():
            return AdTaskSettings.from_dict(snapshot.to_dict() or {})
        return DEFAULT_AD_SETTINGS

    def get_app_task(self, task_id: int) -> AppTask | None:
        return self._get(self._config.app_task_collection, task_id, AppTask)

    def get_link_task(self, task_id: int) -> LinkTask | None:
        return self._get(self._config.link_task_collection, task_id, LinkTask)

    def get_quest(self, quest_id: int) -> Quest | None:
        quest = self._get(self._config.quest_collection, quest_id, Quest)
        return quest if quest is not None and quest.is_active else None

    def get_investment_package(self, package_id: int) -> InvestmentPackage | None:
        package = self._get(self._config.package_collection, package_id, InvestmentPackage)
        return package if package is not None and package.is_active else None

    def list_exchange_rates(self) -> List[ExchangeRate]:
        query = self._db.collection(self._config.exchange_rate_collection).where("is_active", "==", True)
        return [ExchangeRate.from_dict(s.to_dict() or {}) for s in query.stream()]
