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
import secrets
import string
from dataclasses import dataclass
from typing import Optional

from teleearn_core.rewards import idempotency
from teleearn_core.rewards.errors import DuplicateUserError, RewardValidationError
from teleearn_core.rewards.ledger import build_idempotency_key
from teleearn_core.rewards.services.base import RewardService, new_id
from teleearn_core.rewards.store import UnitOfWork
from teleearn_core.rewards.types import Account, Referral, UserAccount
from teleearn_core.schema.requests import RegisterUserRequest, parse_request

logger = logging.getLogger(__name__)

REFERRAL_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 20


@dataclass(frozen=True, slots=True)
class ReferralOutcome:
    referral: Optional[Referral]
    created: bool
    referrer: UserAccount


@dataclass(frozen=True, slots=True)
class RegistrationOutcome:
    user: UserAccount
    created: bool
    referral: Optional[Referral] = None


class ReferralService(RewardService):
    def create_referral(self, referrer_id: str, referred_id: str) -> ReferralOutcome:
        """Credit the referral bonus once per (referrer, referred) pair.

        A repeated call is not an error: it returns ``created=False`` and
        credits nothing.
        """
        if referrer_id == referred_id:
            raise RewardValidationError("Users cannot refer themselves")
        self.get_user(referred_id)
        bonus = self.cfg.referral_bonus_points
        now = self.now()

        def _refer(uow: UnitOfWork) -> ReferralOutcome:
            referrer = self.require_user(uow)
            referral = idempotency.claim_referral(uow, referred_id, bonus, now)
            if referral is None:
                return ReferralOutcome(referral=None, created=False, referrer=referrer)
            referrer = self.ledger.credit(
                uow,
                Account.POINTS,
                bonus,
                reason="referral",
                ref=build_idempotency_key(referrer_id, "referral", referred_id),
                now=now,
            )
            return ReferralOutcome(referral=referral, created=True, referrer=referrer)

        outcome = self.store.atomic(referrer_id, _refer)
        if outcome.created:
            logger.info("[Referrals] referrer=%s referred=%s bonus=%s", referrer_id, referred_id, bonus)
        else:
            logger.debug("[Referrals] Duplicate referral %s -> %s skipped", referrer_id, referred_id)
        return outcome

    def generate_referral_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = "".join(
                secrets.choice(REFERRAL_ALPHABET) for _ in range(self.cfg.referral_code_length)
            )
            if self.store.find_user_by_referral_code(code) is None:
                return code
        raise RuntimeError("Could not generate a unique referral code")

    def register_user(
        self,
        external_id: str,
        *,
        username: str = "",
        first_name: str = "",
        referral_code: Optional[str] = None,
    ) -> RegistrationOutcome:
        """Find or create the user for an external id.

        A new user arriving with a valid referral code gets the welcome
        bonus and the referrer gets the referral bonus. Unknown codes are
        ignored.
        """
        payload = parse_request(
            RegisterUserRequest,
            external_id=str(external_id),
            username=username or "",
            first_name=first_name or "",
            referral_code=referral_code or None,
        )
        existing = self.store.find_user_by_external_id(payload.external_id)
        if existing is not None:
            return RegistrationOutcome(user=existing, created=False)

        referrer = None
        if payload.referral_code:
            referrer = self.store.find_user_by_referral_code(payload.referral_code)
            if referrer is None:
                logger.info("[Referrals] Unknown referral code %s ignored", payload.referral_code)

        now = self.now()
        try:
            user = self.store.create_user(
                UserAccount(
                    user_id=new_id(),
                    external_id=payload.external_id,
                    referral_code=self.generate_referral_code(),
                    username=payload.username or f"user_{payload.external_id}",
                    first_name=payload.first_name or "User",
                    referred_by_code=payload.referral_code if referrer else None,
                    referred_by_id=referrer.user_id if referrer else None,
                    created_at=now,
                )
            )
        except DuplicateUserError:
            # Lost a race with a concurrent registration of the same external id.
            existing = self.store.find_user_by_external_id(payload.external_id)
            if existing is None:
                raise
            return RegistrationOutcome(user=existing, created=False)
        logger.info("[Referrals] Registered user=%s external_id=%s", user.user_id, user.external_id)

        if referrer is None:
            return RegistrationOutcome(user=user, created=True)

        def _welcome(uow: UnitOfWork) -> UserAccount:
            return self.ledger.credit(
                uow,
                Account.POINTS,
                self.cfg.welcome_bonus_points,
                reason="welcome_bonus",
                ref=build_idempotency_key(user.user_id, "welcome"),
                now=now,
            )

        user = self.store.atomic(user.user_id, _welcome)
        outcome = self.create_referral(referrer.user_id, user.user_id)
        return RegistrationOutcome(user=user, created=True, referral=outcome.referral)
