# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Unit tests for BalanceLedger."""

import pytest

from teleearn_core.rewards.errors import (
    InsufficientBalanceError,
    InsufficientPointsError,
    LedgerConsistencyError,
    RewardValidationError,
    UserNotFoundError,
)
from teleearn_core.rewards.ledger import (
    BalanceDelta,
    BalanceLedger,
    LedgerEntryType,
    build_idempotency_key,
)
from teleearn_core.rewards.types import Account


@pytest.fixture
def ledger():
    return BalanceLedger()


class TestCreditDebit:
    def test_credit_updates_balance_and_journals(self, store, user, ledger):
        updated = store.atomic(
            "u1",
            lambda uow: ledger.credit(uow, Account.POINTS, 500, reason="ad_watch", ref="u1:ad:1"),
        )
        assert updated.points == 10500
        assert store.get_user("u1").points == 10500

        entries = store.list_ledger_entries("u1")
        assert len(entries) == 1
        entry = entries[0]
        assert entry.idempotency_key == "u1:ad:1:points"
        assert entry.entry_type == LedgerEntryType.CREDIT
        assert entry.amount == 500
        assert entry.balance_after == 10500
        assert entry.signed_amount == 500

    def test_debit_insufficient_writes_nothing(self, store, user, ledger):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            store.atomic(
                "u1",
                lambda uow: ledger.debit(uow, Account.USD, 1, reason="withdrawal", ref="r1"),
            )
        assert exc_info.value.details["account"] == "usd_balance"
        assert store.get_user("u1").usd_balance == 0
        assert store.list_ledger_entries("u1") == []

    def test_debit_uses_requested_error_type(self, store, user, ledger):
        with pytest.raises(InsufficientPointsError):
            store.atomic(
                "u1",
                lambda uow: ledger.debit(
                    uow, Account.POINTS, 20000, reason="x", ref="r1",
                    insufficient=InsufficientPointsError,
                ),
            )

    def test_debit_to_exactly_zero(self, store, user, ledger):
        updated = store.atomic(
            "u1",
            lambda uow: ledger.debit(uow, Account.POINTS, 10000, reason="x", ref="r1"),
        )
        assert updated.points == 0

    def test_zero_delta_is_skipped(self, store, user, ledger):
        store.atomic("u1", lambda uow: ledger.credit(uow, Account.POINTS, 0, reason="x", ref="r0"))
        assert store.list_ledger_entries("u1") == []

    def test_missing_user(self, store, ledger):
        with pytest.raises(UserNotFoundError):
            store.atomic("ghost", lambda uow: ledger.credit(uow, Account.POINTS, 1, reason="x", ref="r"))

    def test_non_integer_delta_rejected(self, store, user, ledger):
        with pytest.raises(RewardValidationError):
            store.atomic(
                "u1",
                lambda uow: ledger.apply(
                    uow, [BalanceDelta("u1", Account.POINTS, 1.5)], reason="x", ref="r"
                ),
            )

    def test_delta_for_other_user_rejected(self, store, user, ledger):
        with pytest.raises(RewardValidationError):
            store.atomic(
                "u1",
                lambda uow: ledger.apply(
                    uow, [BalanceDelta("u2", Account.POINTS, 1)], reason="x", ref="r"
                ),
            )


class TestTransfer:
    def test_transfer_moves_between_accounts(self, store, user, ledger):
        updated = store.atomic(
            "u1",
            lambda uow: ledger.transfer(
                uow,
                source=Account.POINTS,
                source_amount=500,
                target=Account.USD,
                target_amount=5,
                reason="exchange",
                ref="u1:exchange:1",
            ),
        )
        assert updated.points == 9500
        assert updated.usd_balance == 5
        keys = {e.idempotency_key for e in store.list_ledger_entries("u1")}
        assert keys == {"u1:exchange:1:points", "u1:exchange:1:usd_balance"}

    def test_transfer_insufficient_leaves_both_untouched(self, store, user, ledger):
        with pytest.raises(InsufficientBalanceError):
            store.atomic(
                "u1",
                lambda uow: ledger.transfer(
                    uow,
                    source=Account.USD,
                    source_amount=100,
                    target=Account.COIN,
                    target_amount=100,
                    reason="x",
                    ref="r",
                ),
            )
        fresh = store.get_user("u1")
        assert fresh.usd_balance == 0
        assert fresh.coin_balance == 0

    def test_same_account_rejected(self, store, user, ledger):
        with pytest.raises(RewardValidationError):
            store.atomic(
                "u1",
                lambda uow: ledger.transfer(
                    uow,
                    source=Account.POINTS,
                    source_amount=1,
                    target=Account.POINTS,
                    target_amount=1,
                    reason="x",
                    ref="r",
                ),
            )


class TestIdempotencyKeys:
    def test_repeated_ref_is_a_consistency_error(self, store, user, ledger):
        store.atomic("u1", lambda uow: ledger.credit(uow, Account.POINTS, 5, reason="x", ref="once"))
        with pytest.raises(LedgerConsistencyError):
            store.atomic("u1", lambda uow: ledger.credit(uow, Account.POINTS, 5, reason="x", ref="once"))
        assert store.get_user("u1").points == 10005

    def test_build_key_skips_empty_parts(self):
        assert build_idempotency_key("u1", "", None, "quest", " 3 ") == "u1:quest:3"


class TestVerification:
    def test_lost_write_is_detected(self, store, user, ledger):
        class LossyUnitOfWork:
            def __init__(self, inner):
                self._inner = inner
                self.user_id = inner.user_id

            def __getattr__(self, name):
                return getattr(self._inner, name)

            def put_user(self, user):
                pass

        with pytest.raises(LedgerConsistencyError):
            store.atomic(
                "u1",
                lambda uow: ledger.credit(
                    LossyUnitOfWork(uow), Account.POINTS, 5, reason="x", ref="r"
                ),
            )
        assert store.get_user("u1").points == 10000
