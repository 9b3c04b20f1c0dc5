# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 TeleEarn Contributors
"""
Request payload models.

Payloads are validated before any state is touched; pydantic
``ValidationError`` is translated into ``RewardValidationError``.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, Field, ValidationError

from teleearn_core.rewards.errors import RewardValidationError
from teleearn_core.rewards.types import Currency, DepositType, TaskType
from teleearn_core.schema.serialization import SchemaModel

T = TypeVar("T", bound=SchemaModel)


def _fiat_only(value: Currency) -> Currency:
    if value not in (Currency.USD, Currency.EGP):
        raise ValueError("currency must be usd or egp")
    return value


FiatCurrency = Annotated[Currency, AfterValidator(_fiat_only)]


class TaskCompletionRequest(SchemaModel):
    task_type: TaskType
    task_id: int = Field(ge=0)


class ExchangeRequest(SchemaModel):
    points: int = Field(gt=0)
    currency: FiatCurrency


class CoinConversionRequest(SchemaModel):
    points: int = Field(gt=0)


class TransferToMainRequest(SchemaModel):
    amount: int = Field(gt=0)
    currency: FiatCurrency


class WithdrawalCreateRequest(SchemaModel):
    amount: int = Field(gt=0)
    currency: FiatCurrency
    method: str = Field(min_length=1)
    account_details: str | None = None


class DepositCreateRequest(SchemaModel):
    amount: int = Field(gt=0)
    currency: FiatCurrency
    method: str = Field(min_length=1)
    deposit_type: DepositType = DepositType.INVESTMENT
    account_details: str | None = None
    transaction_proof: str | None = None


class RegisterUserRequest(SchemaModel):
    external_id: str = Field(min_length=1)
    username: str = ""
    first_name: str = ""
    referral_code: str | None = None


def parse_request(model_cls: type[T], **payload: Any) -> T:
    """Validate a payload, raising ``RewardValidationError`` on failure."""
    try:
        return model_cls.model_validate(payload)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        raise RewardValidationError(
            f"Invalid {model_cls.__name__}", errors=errors
        ) from exc
