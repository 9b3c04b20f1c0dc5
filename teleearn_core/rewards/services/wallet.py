# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Wallet Service.

Withdrawals reserve funds: the amount is debited when the request is
created, approval changes only the status and rejection credits the
amount back. Deposits mirror this: nothing moves on creation, approval
credits the account named by ``(deposit_type, currency)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from teleearn_core.rewards.errors import RequestAlreadyProcessedError, RequestNotFoundError
from teleearn_core.rewards.ledger import build_idempotency_key
from teleearn_core.rewards.services.base import RewardService, new_id
from teleearn_core.rewards.store import UnitOfWork
from teleearn_core.rewards.types import (
    DepositRequest,
    RequestStatus,
    UserAccount,
    WithdrawalRequest,
    deposit_account,
    main_account,
)
from teleearn_core.schema.requests import (
    DepositCreateRequest,
    WithdrawalCreateRequest,
    parse_request,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WithdrawalOutcome:
    request: WithdrawalRequest
    user: UserAccount


@dataclass(frozen=True, slots=True)
class DepositOutcome:
    request: DepositRequest
    user: UserAccount


class WalletService(RewardService):
    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    def create_withdrawal(
        self,
        user_id: str,
        *,
        amount: int,
        currency: str,
        method: str,
        account_details: Optional[str] = None,
    ) -> WithdrawalOutcome:
        payload = parse_request(
            WithdrawalCreateRequest,
            amount=amount,
            currency=currency,
            method=method,
            account_details=account_details,
        )
        now = self.now()

        def _create(uow: UnitOfWork) -> WithdrawalOutcome:
            request = WithdrawalRequest(
                request_id=new_id(),
                user_id=user_id,
                amount=payload.amount,
                currency=payload.currency,
                method=payload.method,
                account_details=payload.account_details,
                created_at=now,
            )
            user = self.ledger.debit(
                uow,
                main_account(payload.currency),
                payload.amount,
                reason="withdrawal_reserve",
                ref=build_idempotency_key(user_id, "withdrawal", request.request_id, "reserve"),
                now=now,
            )
            uow.put_withdrawal(request)
            return WithdrawalOutcome(request=request, user=user)

        outcome = self.store.atomic(user_id, _create)
        logger.info(
            "[Wallet] user=%s withdrawal=%s reserved %s %s",
            user_id, outcome.request.request_id, payload.amount, payload.currency.value,
        )
        return outcome

    def _process_withdrawal(
        self,
        request_id: str,
        status: RequestStatus,
        settle: Callable[[UnitOfWork, WithdrawalRequest], UserAccount] | None = None,
    ) -> WithdrawalOutcome:
        owner = self.store.find_withdrawal_owner(request_id)
        if owner is None:
            raise RequestNotFoundError(f"Withdrawal {request_id} not found", request_id=request_id)

        def _process(uow: UnitOfWork) -> WithdrawalOutcome:
            request = uow.get_withdrawal(request_id)
            if request is None:
                raise RequestNotFoundError(f"Withdrawal {request_id} not found", request_id=request_id)
            if request.status != RequestStatus.PENDING:
                raise RequestAlreadyProcessedError(
                    "Request already processed",
                    request_id=request_id,
                    status=request.status.value,
                )
            user = settle(uow, request) if settle else self.require_user(uow)
            request = replace(request, status=status)
            uow.put_withdrawal(request)
            return WithdrawalOutcome(request=request, user=user)

        outcome = self.store.atomic(owner, _process)
        logger.info("[Wallet] withdrawal=%s %s", request_id, status.value)
        return outcome

    def approve_withdrawal(self, request_id: str) -> WithdrawalOutcome:
        """Funds were reserved on creation; approval moves no balance."""
        return self._process_withdrawal(request_id, RequestStatus.APPROVED)

    def reject_withdrawal(self, request_id: str) -> WithdrawalOutcome:
        def _refund(uow: UnitOfWork, request: WithdrawalRequest) -> UserAccount:
            return self.ledger.credit(
                uow,
                main_account(request.currency),
                request.amount,
                reason="withdrawal_refund",
                ref=build_idempotency_key(request.user_id, "withdrawal", request.request_id, "refund"),
                now=self.now(),
            )

        return self._process_withdrawal(request_id, RequestStatus.REJECTED, _refund)

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    def create_deposit(
        self,
        user_id: str,
        *,
        amount: int,
        currency: str,
        method: str,
        deposit_type: str = "investment",
        account_details: Optional[str] = None,
        transaction_proof: Optional[str] = None,
    ) -> DepositOutcome:
        payload = parse_request(
            DepositCreateRequest,
            amount=amount,
            currency=currency,
            method=method,
            deposit_type=deposit_type,
            account_details=account_details,
            transaction_proof=transaction_proof,
        )
        now = self.now()

        def _create(uow: UnitOfWork) -> DepositOutcome:
            user = self.require_user(uow)
            request = DepositRequest(
                request_id=new_id(),
                user_id=user_id,
                amount=payload.amount,
                currency=payload.currency,
                method=payload.method,
                deposit_type=payload.deposit_type,
                account_details=payload.account_details,
                transaction_proof=payload.transaction_proof,
                created_at=now,
            )
            uow.put_deposit(request)
            return DepositOutcome(request=request, user=user)

        outcome = self.store.atomic(user_id, _create)
        logger.info(
            "[Wallet] user=%s deposit=%s requested %s %s (%s)",
            user_id, outcome.request.request_id, payload.amount,
            payload.currency.value, payload.deposit_type.value,
        )
        return outcome

    def _process_deposit(
        self,
        request_id: str,
        status: RequestStatus,
        settle: Callable[[UnitOfWork, DepositRequest], UserAccount] | None = None,
    ) -> DepositOutcome:
        owner = self.store.find_deposit_owner(request_id)
        if owner is None:
            raise RequestNotFoundError(f"Deposit {request_id} not found", request_id=request_id)

        def _process(uow: UnitOfWork) -> DepositOutcome:
            request = uow.get_deposit(request_id)
            if request is None:
                raise RequestNotFoundError(f"Deposit {request_id} not found", request_id=request_id)
            if request.status != RequestStatus.PENDING:
                raise RequestAlreadyProcessedError(
                    "Request already processed",
                    request_id=request_id,
                    status=request.status.value,
                )
            user = settle(uow, request) if settle else self.require_user(uow)
            request = replace(request, status=status)
            uow.put_deposit(request)
            return DepositOutcome(request=request, user=user)

        outcome = self.store.atomic(owner, _process)
        logger.info("[Wallet] deposit=%s %s", request_id, status.value)
        return outcome

    def approve_deposit(self, request_id: str) -> DepositOutcome:
        def _credit(uow: UnitOfWork, request: DepositRequest) -> UserAccount:
            return self.ledger.credit(
                uow,
                deposit_account(request.deposit_type, request.currency),
                request.amount,
                reason="deposit",
                ref=build_idempotency_key(request.user_id, "deposit", request.request_id),
                now=self.now(),
            )

        return self._process_deposit(request_id, RequestStatus.APPROVED, _credit)

    def reject_deposit(self, request_id: str) -> DepositOutcome:
        return self._process_deposit(request_id, RequestStatus.REJECTED)
