# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

# -----------------------------------------------------------------------------
# Accounts & Currencies
# -----------------------------------------------------------------------------


class Account(str, Enum):
    """The six independent balances of a user. Values are field names."""

    POINTS = "points"
    COIN = "coin_balance"
    USD = "usd_balance"
    EGP = "egp_balance"
    INVESTMENT_USD = "investment_usd_balance"
    INVESTMENT_EGP = "investment_egp_balance"


class Currency(str, Enum):
    """Currency tag used by catalog prices and rewards."""

    POINTS = "points"
    COIN = "coin"
    USD = "usd"
    EGP = "egp"


class TaskType(str, Enum):
    APP = "app"
    LINK = "link"


class QuestType(str, Enum):
    WATCH_ADS = "watch_ads"
    INVITE_FRIENDS = "invite_friends"
    COMPLETE_TASKS = "complete_tasks"


class PackageType(str, Enum):
    OWN = "own"
    POINTS = "points"


class DepositType(str, Enum):
    MAIN = "main"
    INVESTMENT = "investment"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


FIAT_CURRENCIES = (Currency.USD, Currency.EGP)

_INVESTMENT_ACCOUNTS = {
    Currency.POINTS: Account.POINTS,
    Currency.COIN: Account.COIN,
    Currency.USD: Account.INVESTMENT_USD,
    Currency.EGP: Account.INVESTMENT_EGP,
}

_MAIN_ACCOUNTS = {
    Currency.USD: Account.USD,
    Currency.EGP: Account.EGP,
}


def investment_account(currency: Currency) -> Account:
    """Account credited/debited by investment rewards and points-type packages."""
    return _INVESTMENT_ACCOUNTS[Currency(currency)]


def main_account(currency: Currency) -> Account:
    """Main fiat account for a fiat currency. Raises ValueError for non-fiat tags."""
    currency = Currency(currency)
    if currency not in _MAIN_ACCOUNTS:
        raise ValueError(f"{currency.value} has no main fiat account")
    return _MAIN_ACCOUNTS[currency]


def deposit_account(deposit_type: DepositType, currency: Currency) -> Account:
    if DepositType(deposit_type) == DepositType.MAIN:
        return main_account(currency)
    currency = Currency(currency)
    if currency not in FIAT_CURRENCIES:
        raise ValueError(f"{currency.value} cannot be deposited")
    return investment_account(currency)


# -----------------------------------------------------------------------------
# Serialization helpers
# -----------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt_from(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif hasattr(value, "to_datetime"):
        dt = value.to_datetime()
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _date_from(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def utc_date(value: Optional[datetime]) -> Optional[date]:
    """UTC calendar date of a timestamp (the date bucket)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


# -----------------------------------------------------------------------------
# User Account
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UserAccount:
    """A user with six balances and the rate-limit state the core owns."""

    user_id: str
    external_id: str
    referral_code: str
    username: str = ""
    first_name: str = ""
    points: int = 0
    coin_balance: int = 0
    usd_balance: int = 0          # cents
    egp_balance: int = 0          # piastres
    investment_usd_balance: int = 0
    investment_egp_balance: int = 0
    ads_watched_today: int = 0
    last_ad_watch: Optional[datetime] = None
    ad_limit_reset_time: Optional[datetime] = None
    last_daily_bonus_at: Optional[datetime] = None
    last_daily_claim_date: Optional[date] = None
    daily_streak: int = 0
    referred_by_code: Optional[str] = None
    referred_by_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def balance(self, account: Account) -> int:
        return getattr(self, Account(account).value)

    def balances(self) -> Dict[str, int]:
        return {a.value: self.balance(a) for a in Account}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "external_id": self.external_id,
            "referral_code": self.referral_code,
            "username": self.username,
            "first_name": self.first_name,
            **self.balances(),
            "ads_watched_today": self.ads_watched_today,
            "last_ad_watch": _dt_to_str(self.last_ad_watch),
            "ad_limit_reset_time": _dt_to_str(self.ad_limit_reset_time),
            "last_daily_bonus_at": _dt_to_str(self.last_daily_bonus_at),
            "last_daily_claim_date": self.last_daily_claim_date.isoformat() if self.last_daily_claim_date else None,
            "daily_streak": self.daily_streak,
            "referred_by_code": self.referred_by_code,
            "referred_by_id": self.referred_by_id,
            "created_at": _dt_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserAccount":
        return cls(
            user_id=str(data["user_id"]),
            external_id=str(data.get("external_id", "")),
            referral_code=data.get("referral_code", ""),
            username=data.get("username") or "",
            first_name=data.get("first_name") or "",
            points=int(data.get("points", 0)),
            coin_balance=int(data.get("coin_balance", 0)),
            usd_balance=int(data.get("usd_balance", 0)),
            egp_balance=int(data.get("egp_balance", 0)),
            investment_usd_balance=int(data.get("investment_usd_balance") or 0),
            investment_egp_balance=int(data.get("investment_egp_balance") or 0),
            ads_watched_today=int(data.get("ads_watched_today", 0)),
            last_ad_watch=_dt_from(data.get("last_ad_watch")),
            ad_limit_reset_time=_dt_from(data.get("ad_limit_reset_time")),
            last_daily_bonus_at=_dt_from(data.get("last_daily_bonus_at")),
            last_daily_claim_date=_date_from(data.get("last_daily_claim_date")),
            daily_streak=int(data.get("daily_streak", 0)),
            referred_by_code=data.get("referred_by_code"),
            referred_by_id=data.get("referred_by_id"),
            created_at=_dt_from(data.get("created_at")) or utcnow(),
        )


# -----------------------------------------------------------------------------
# Idempotency Witnesses
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TaskCompletion:
    user_id: str
    task_type: TaskType
    task_id: int
    completed_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return task_completion_key(self.user_id, self.task_type, self.task_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "task_type": TaskType(self.task_type).value,
            "task_id": self.task_id,
            "completed_at": _dt_to_str(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskCompletion":
        return cls(
            user_id=str(data["user_id"]),
            task_type=TaskType(data["task_type"]),
            task_id=int(data["task_id"]),
            completed_at=_dt_from(data.get("completed_at")) or utcnow(),
        )


def task_completion_key(user_id: str, task_type: TaskType | str, task_id: int) -> str:
    return f"{user_id}:{TaskType(task_type).value}:{task_id}"


@dataclass(frozen=True, slots=True)
class QuestProgress:
    user_id: str
    quest_id: int
    progress: int = 0
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "quest_id": self.quest_id,
            "progress": self.progress,
            "is_completed": self.is_completed,
            "completed_at": _dt_to_str(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestProgress":
        return cls(
            user_id=str(data["user_id"]),
            quest_id=int(data["quest_id"]),
            progress=int(data.get("progress", 0)),
            is_completed=bool(data.get("is_completed", False)),
            completed_at=_dt_from(data.get("completed_at")),
        )


@dataclass(frozen=True, slots=True)
class Referral:
    referrer_id: str
    referred_id: str
    points_earned: int = 1000
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "referrer_id": self.referrer_id,
            "referred_id": self.referred_id,
            "points_earned": self.points_earned,
            "created_at": _dt_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Referral":
        return cls(
            referrer_id=str(data["referrer_id"]),
            referred_id=str(data["referred_id"]),
            points_earned=int(data.get("points_earned", 1000)),
            created_at=_dt_from(data.get("created_at")) or utcnow(),
        )


# -----------------------------------------------------------------------------
# Investments
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UserInvestment:
    investment_id: str
    user_id: str
    package_id: int
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    tasks_completed_today: int = 0
    last_task_date: Optional[datetime] = None
    ads_watched_today: int = 0
    last_ad_watch: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "investment_id": self.investment_id,
            "user_id": self.user_id,
            "package_id": self.package_id,
            "start_date": _dt_to_str(self.start_date),
            "end_date": _dt_to_str(self.end_date),
            "is_active": self.is_active,
            "tasks_completed_today": self.tasks_completed_today,
            "last_task_date": _dt_to_str(self.last_task_date),
            "ads_watched_today": self.ads_watched_today,
            "last_ad_watch": _dt_to_str(self.last_ad_watch),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserInvestment":
        return cls(
            investment_id=str(data["investment_id"]),
            user_id=str(data["user_id"]),
            package_id=int(data["package_id"]),
            start_date=_dt_from(data["start_date"]),
            end_date=_dt_from(data["end_date"]),
            is_active=bool(data.get("is_active", True)),
            tasks_completed_today=int(data.get("tasks_completed_today", 0)),
            last_task_date=_dt_from(data.get("last_task_date")),
            ads_watched_today=int(data.get("ads_watched_today", 0)),
            last_ad_watch=_dt_from(data.get("last_ad_watch")),
        )


# -----------------------------------------------------------------------------
# Withdrawal & Deposit Requests
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WithdrawalRequest:
    request_id: str
    user_id: str
    amount: int
    currency: Currency
    method: str
    account_details: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "amount": self.amount,
            "currency": Currency(self.currency).value,
            "method": self.method,
            "account_details": self.account_details,
            "status": RequestStatus(self.status).value,
            "created_at": _dt_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WithdrawalRequest":
        return cls(
            request_id=str(data["request_id"]),
            user_id=str(data["user_id"]),
            amount=int(data["amount"]),
            currency=Currency(data["currency"]),
            method=data.get("method", ""),
            account_details=data.get("account_details"),
            status=RequestStatus(data.get("status", RequestStatus.PENDING.value)),
            created_at=_dt_from(data.get("created_at")) or utcnow(),
        )


@dataclass(frozen=True, slots=True)
class DepositRequest:
    request_id: str
    user_id: str
    amount: int
    currency: Currency
    method: str
    deposit_type: DepositType = DepositType.INVESTMENT
    account_details: Optional[str] = None
    transaction_proof: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "amount": self.amount,
            "currency": Currency(self.currency).value,
            "method": self.method,
            "deposit_type": DepositType(self.deposit_type).value,
            "account_details": self.account_details,
            "transaction_proof": self.transaction_proof,
            "status": RequestStatus(self.status).value,
            "created_at": _dt_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DepositRequest":
        return cls(
            request_id=str(data["request_id"]),
            user_id=str(data["user_id"]),
            amount=int(data["amount"]),
            currency=Currency(data["currency"]),
            method=data.get("method", ""),
            deposit_type=DepositType(data.get("deposit_type") or DepositType.INVESTMENT.value),
            account_details=data.get("account_details"),
            transaction_proof=data.get("transaction_proof"),
            status=RequestStatus(data.get("status", RequestStatus.PENDING.value)),
            created_at=_dt_from(data.get("created_at")) or utcnow(),
        )
