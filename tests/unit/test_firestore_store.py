# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Unit tests for the Firestore adapters against a mocked client."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import Conflict

from teleearn_core.rewards.adapters import firestore as firestore_adapter
from teleearn_core.rewards.adapters.firestore import FirestoreCatalog, FirestoreRewardStore
from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.errors import InsufficientBalanceError, RewardValidationError
from teleearn_core.rewards.ledger import BalanceLedger
from teleearn_core.rewards.types import Account, UserAccount

T0 = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def _snapshot(doc_id, data):
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = data is not None
    snap.to_dict.return_value = data
    return snap


class FakeDb:
    """Builds MagicMock collections over a dict of documents."""

    def __init__(self, docs=None, queries=None):
        self.docs = docs or {}
        self.queries = queries or {}
        self.client = MagicMock()
        self.client.collection.side_effect = self._collection
        self.transaction = MagicMock()
        self.client.transaction.return_value = self.transaction

    def _collection(self, name):
        col = MagicMock()

        def _document(doc_id):
            ref = MagicMock()
            ref.path = (name, doc_id)
            ref.get.side_effect = lambda transaction=None: _snapshot(doc_id, self.docs.get((name, doc_id)))
            return ref

        col.document.side_effect = _document
        results = [_snapshot(str(i), d) for i, d in enumerate(self.queries.get(name, []))]
        col.where.return_value.stream.return_value = results
        col.where.return_value.limit.return_value.stream.return_value = results
        col.where.return_value.order_by.return_value.limit.return_value.stream.return_value = results
        return col

    def writes(self):
        return {c.args[0].path: c.args[1] for c in self.transaction.set.call_args_list}


@pytest.fixture
def plain_transactions(monkeypatch):
    monkeypatch.setattr(firestore_adapter.firestore, "transactional", lambda fn: fn)


def _user_doc(**fields):
    data = UserAccount(user_id="u1", external_id="tg-1", referral_code="ABC123", created_at=T0).to_dict()
    data.update(fields)
    return data


class TestFirestoreRewardStore:
    def test_atomic_flushes_buffered_writes(self, plain_transactions):
        db = FakeDb(docs={("users", "u1"): _user_doc(points=100)})
        store = FirestoreRewardStore(db.client)

        updated = store.atomic(
            "u1",
            lambda uow: BalanceLedger().credit(uow, Account.POINTS, 50, reason="ad_watch", ref="u1:ad:1", now=T0),
        )

        assert updated.points == 150
        writes = db.writes()
        assert writes[("users", "u1")]["points"] == 150
        entry = writes[("reward_ledger", "u1:ad:1:points")]
        assert entry["amount"] == 50
        assert entry["balance_after"] == 150

    def test_atomic_writes_nothing_on_error(self, plain_transactions):
        db = FakeDb(docs={("users", "u1"): _user_doc(points=10)})
        store = FirestoreRewardStore(db.client)

        with pytest.raises(InsufficientBalanceError):
            store.atomic(
                "u1",
                lambda uow: BalanceLedger().debit(uow, Account.POINTS, 50, reason="x", ref="r"),
            )
        db.transaction.set.assert_not_called()

    def test_reads_go_through_transaction(self, plain_transactions):
        db = FakeDb(docs={("users", "u1"): _user_doc()})
        store = FirestoreRewardStore(db.client)
        user = store.atomic("u1", lambda uow: uow.get_user())
        assert user.external_id == "tg-1"

    def test_get_user_missing(self):
        store = FirestoreRewardStore(FakeDb().client)
        assert store.get_user("nobody") is None

    def test_create_user_conflict(self):
        db = FakeDb()
        users = MagicMock()
        users.document.return_value.create.side_effect = Conflict("exists")
        db.client.collection.side_effect = lambda name: users
        store = FirestoreRewardStore(db.client)
        with pytest.raises(RewardValidationError):
            store.create_user(UserAccount(user_id="u1", external_id="1", referral_code="ABC123"))

    def test_find_user_by_referral_code(self):
        db = FakeDb(queries={"users": [_user_doc()]})
        store = FirestoreRewardStore(db.client)
        assert store.find_user_by_referral_code("ABC123").user_id == "u1"

    def test_list_ledger_entries(self):
        entry = {
            "idempotency_key": "u1:ad:1:points",
            "entry_type": "credit",
            "account": "points",
            "amount": 500,
            "user_id": "u1",
            "reason": "ad_watch",
            "balance_after": 500,
            "created_at": T0.isoformat(),
        }
        store = FirestoreRewardStore(FakeDb(queries={"reward_ledger": [entry]}).client)
        entries = store.list_ledger_entries("u1", limit=10)
        assert [e.idempotency_key for e in entries] == ["u1:ad:1:points"]

    def test_custom_collection_names(self):
        db = FakeDb(docs={("tg_users", "u1"): _user_doc()})
        store = FirestoreRewardStore(db.client, config=RewardsConfig(user_collection="tg_users"))
        assert store.get_user("u1") is not None


class TestFirestoreCatalog:
    def test_default_ad_settings_without_active_doc(self):
        catalog = FirestoreCatalog(FakeDb().client)
        assert catalog.get_ad_settings().points_per_view == 500

    def test_active_ad_settings(self):
        db = FakeDb(queries={"ad_settings": [{"points_per_view": 300, "daily_limit": 20, "cooldown_seconds": 10}]})
        settings = FirestoreCatalog(db.client).get_ad_settings()
        assert settings.daily_limit == 20

    def test_inactive_quest_hidden(self):
        db = FakeDb(docs={
            ("quests", "1"): {"title": "Q", "type": "watch_ads", "target": 3, "reward": 10, "is_active": False},
            ("quests", "2"): {"title": "Q", "type": "watch_ads", "target": 3, "reward": 10},
        })
        catalog = FirestoreCatalog(db.client)
        assert catalog.get_quest(1) is None
        assert catalog.get_quest(2).id == 2

    def test_missing_app_task(self):
        assert FirestoreCatalog(FakeDb().client).get_app_task(5) is None
