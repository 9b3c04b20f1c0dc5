# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 TeleEarn Contributors

import pytest
from decimal import Decimal
from datetime import datetime, timezone

from teleearn_core.rewards.errors import RewardValidationError
from teleearn_core.rewards.types import Currency, DepositType, TaskType, UserAccount
from teleearn_core.schema import (
    DepositCreateRequest,
    ExchangeRequest,
    FiatCurrency,
    InvestmentPackage,
    Quest,
    TaskCompletionRequest,
    TransferToMainRequest,
    WithdrawalCreateRequest,
    dump_schema,
    parse_request,
)


def test_task_request_coerces_enum():
    req = parse_request(TaskCompletionRequest, task_type="link", task_id=4)
    assert req.task_type == TaskType.LINK


def test_parse_request_collects_errors():
    with pytest.raises(RewardValidationError) as exc_info:
        parse_request(WithdrawalCreateRequest, amount=-1, currency="usd", method="")
    fields = {e["field"] for e in exc_info.value.details["errors"]}
    assert fields == {"amount", "method"}
    assert exc_info.value.to_dict()["error"] == "invalid_request"


def test_exchange_request_fiat_only():
    assert parse_request(ExchangeRequest, points=500, currency="egp").currency == Currency.EGP
    with pytest.raises(RewardValidationError):
        parse_request(ExchangeRequest, points=500, currency="coin")


def test_deposit_defaults_to_investment():
    req = parse_request(DepositCreateRequest, amount=10, currency="usd", method="card")
    assert req.deposit_type == DepositType.INVESTMENT


def test_catalog_ignores_extra_fields():
    quest = Quest.from_dict({"id": 1, "type": "watch_ads", "target": 1, "reward": 5, "admin_note": "x"})
    assert quest.to_dict()["type"] == "watch_ads"


def test_quest_target_must_be_positive():
    with pytest.raises(ValueError):
        Quest(id=1, type="watch_ads", target=0, reward=5)


def test_package_rejects_unknown_currency():
    with pytest.raises(ValueError):
        InvestmentPackage(
            id=1, type="points", price=1, number_of_days=1, reward_per_task=1, reward_currency="btc"
        )


def test_dump_schema_handles_records():
    user = UserAccount(
        user_id="u1",
        external_id="1",
        referral_code="ABC123",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    dumped = dump_schema(user)
    assert dumped["points"] == 0
    assert dumped["created_at"] == "2025-01-01T00:00:00+00:00"


def test_dump_schema_handles_outcome_dataclasses():
    from teleearn_core.rewards.services.exchange import ExchangeQuote

    quote = ExchangeQuote(points=500, currency=Currency.USD, rate=Decimal("0.0001"), amount=5)
    assert dump_schema(quote) == {"points": 500, "currency": "usd", "rate": "0.0001", "amount": 5}


@pytest.mark.parametrize(
    "model_cls, payload",
    [
        (ExchangeRequest, {"points": 500}),
        (TransferToMainRequest, {"amount": 10}),
        (WithdrawalCreateRequest, {"amount": 10, "method": "paypal"}),
        (DepositCreateRequest, {"amount": 10, "method": "card"}),
    ],
)
def test_money_requests_share_fiat_rule(model_cls, payload):
    assert parse_request(model_cls, currency="usd", **payload).currency == Currency.USD
    for currency in ("points", "coin"):
        with pytest.raises(RewardValidationError):
            parse_request(model_cls, currency=currency, **payload)


def test_fiat_currency_type():
    from pydantic import TypeAdapter

    adapter = TypeAdapter(FiatCurrency)
    assert adapter.validate_python("egp") == Currency.EGP
    with pytest.raises(ValueError):
        adapter.validate_python("points")
