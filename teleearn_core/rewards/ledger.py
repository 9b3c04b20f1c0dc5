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
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Type

from teleearn_core.rewards.errors import (
    InsufficientBalanceError,
    LedgerConsistencyError,
    RewardValidationError,
    UserNotFoundError,
)
from teleearn_core.rewards.types import Account, UserAccount, _dt_from, _dt_to_str, utcnow

if TYPE_CHECKING:
    from teleearn_core.rewards.store import UnitOfWork

logger = logging.getLogger(__name__)


class LedgerEntryType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    idempotency_key: str
    entry_type: LedgerEntryType
    account: Account
    amount: int
    user_id: str
    reason: str
    balance_after: int
    created_at: datetime = field(default_factory=utcnow)
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def signed_amount(self) -> int:
        return self.amount if self.entry_type == LedgerEntryType.CREDIT else -self.amount

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for persistence."""
        return {
            "idempotency_key": self.idempotency_key,
            "entry_type": self.entry_type.value,
            "account": self.account.value,
            "amount": self.amount,
            "user_id": self.user_id,
            "reason": self.reason,
            "balance_after": self.balance_after,
            "created_at": _dt_to_str(self.created_at),
            "meta": self.meta,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerEntry":
        """Load from dictionary."""
        return cls(
            idempotency_key=data.get("idempotency_key", ""),
            entry_type=LedgerEntryType(data.get("entry_type", LedgerEntryType.CREDIT.value)),
            account=Account(data["account"]),
            amount=int(data.get("amount", 0)),
            user_id=str(data.get("user_id", "")),
            reason=data.get("reason", ""),
            balance_after=int(data.get("balance_after", 0)),
            created_at=_dt_from(data.get("created_at")) or utcnow(),
            meta=data.get("meta") or {},
        )


@dataclass(frozen=True, slots=True)
class BalanceDelta:
    user_id: str
    account: Account
    delta: int


def build_idempotency_key(*parts: str) -> str:
    cleaned = [str(p).strip() for p in parts if p is not None and str(p).strip()]
    return ":".join(cleaned)


def apply_delta(user: UserAccount, account: Account, delta: int) -> UserAccount:
    """The single balance mutation. Does not check sufficiency."""
    account = Account(account)
    return replace(user, **{account.value: user.balance(account) + delta})


class BalanceLedger:
    """Applies balance deltas inside a unit of work and journals each one.

    Debits are checked for sufficiency before anything is written. After a
    write the balance is re-read and verified; a mismatch aborts the unit
    of work with ``LedgerConsistencyError``.
    """

    def credit(
        self,
        uow: "UnitOfWork",
        account: Account,
        amount: int,
        *,
        reason: str,
        ref: str,
        now: datetime | None = None,
        meta: dict | None = None,
    ) -> UserAccount:
        return self.apply(
            uow,
            [BalanceDelta(uow.user_id, Account(account), amount)],
            reason=reason,
            ref=ref,
            now=now,
            meta=meta,
        )

    def debit(
        self,
        uow: "UnitOfWork",
        account: Account,
        amount: int,
        *,
        reason: str,
        ref: str,
        now: datetime | None = None,
        insufficient: Type[InsufficientBalanceError] = InsufficientBalanceError,
        meta: dict | None = None,
    ) -> UserAccount:
        return self.apply(
            uow,
            [BalanceDelta(uow.user_id, Account(account), -amount)],
            reason=reason,
            ref=ref,
            now=now,
            insufficient=insufficient,
            meta=meta,
        )

    def transfer(
        self,
        uow: "UnitOfWork",
        *,
        source: Account,
        source_amount: int,
        target: Account,
        target_amount: int,
        reason: str,
        ref: str,
        now: datetime | None = None,
        insufficient: Type[InsufficientBalanceError] = InsufficientBalanceError,
        meta: dict | None = None,
    ) -> UserAccount:
        """Debit ``source`` and credit ``target`` atomically (amounts may differ across currencies)."""
        if Account(source) == Account(target):
            raise RewardValidationError("Transfer source and target must differ")
        return self.apply(
            uow,
            [
                BalanceDelta(uow.user_id, Account(source), -source_amount),
                BalanceDelta(uow.user_id, Account(target), target_amount),
            ],
            reason=reason,
            ref=ref,
            now=now,
            insufficient=insufficient,
            meta=meta,
        )

    def apply(
        self,
        uow: "UnitOfWork",
        deltas: Iterable[BalanceDelta],
        *,
        reason: str,
        ref: str,
        now: datetime | None = None,
        insufficient: Type[InsufficientBalanceError] = InsufficientBalanceError,
        meta: dict | None = None,
    ) -> UserAccount:
        deltas = [d for d in deltas if d.delta != 0]
        user = uow.get_user()
        if user is None:
            raise UserNotFoundError(f"User {uow.user_id} not found")

        for d in deltas:
            if d.user_id != user.user_id:
                raise RewardValidationError("Balance delta targets a different user")
            if not isinstance(d.delta, int) or isinstance(d.delta, bool):
                raise RewardValidationError("Balance delta must be an integer")

        # Sufficiency before any write.
        projected = user
        for d in deltas:
            projected = apply_delta(projected, d.account, d.delta)
            if projected.balance(d.account) < 0:
                raise insufficient(
                    f"Insufficient {d.account.value}",
                    account=d.account.value,
                    balance=user.balance(d.account),
                    required=-d.delta,
                )

        if not deltas:
            return user

        uow.put_user(projected)
        written = uow.get_user()
        for d in deltas:
            self._verify(user, written, d)

        created_at = now or utcnow()
        for d in deltas:
            entry = LedgerEntry(
                idempotency_key=build_idempotency_key(ref, d.account.value),
                entry_type=LedgerEntryType.CREDIT if d.delta > 0 else LedgerEntryType.DEBIT,
                account=d.account,
                amount=abs(d.delta),
                user_id=user.user_id,
                reason=reason,
                balance_after=written.balance(d.account),
                created_at=created_at,
                meta=dict(meta or {}),
            )
            uow.append_ledger_entry(entry)

        return written

    @staticmethod
    def _verify(before: UserAccount, after: Optional[UserAccount], d: BalanceDelta) -> None:
        old = before.balance(d.account)
        new = after.balance(d.account) if after is not None else None
        if new is None or new != old + d.delta or new < 0:
            logger.error(
                "[Ledger] Inconsistent %s for user=%s: old=%s delta=%s new=%s",
                d.account.value, d.user_id, old, d.delta, new,
            )
            raise LedgerConsistencyError(
                f"Balance verification failed for {d.account.value}",
                account=d.account.value,
                expected=old + d.delta,
                actual=new,
            )
