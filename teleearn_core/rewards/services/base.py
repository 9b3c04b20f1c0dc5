# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.errors import UserNotFoundError
from teleearn_core.rewards.ledger import BalanceLedger, build_idempotency_key
from teleearn_core.rewards.store import CatalogStore, RewardStore, UnitOfWork
from teleearn_core.rewards.types import UserAccount, utcnow

Clock = Callable[[], datetime]


class RewardService:
    """Shared wiring for the reward services."""

    def __init__(
        self,
        store: RewardStore,
        catalog: CatalogStore,
        cfg: RewardsConfig | None = None,
        *,
        ledger: BalanceLedger | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.cfg = cfg or RewardsConfig()
        self.ledger = ledger or BalanceLedger()
        self.clock = clock or utcnow

    def now(self) -> datetime:
        return self.clock()

    def require_user(self, uow: UnitOfWork) -> UserAccount:
        user = uow.get_user()
        if user is None:
            raise UserNotFoundError(f"User {uow.user_id} not found")
        return user

    def get_user(self, user_id: str) -> UserAccount:
        user = self.store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def new_ref(user_id: str, action: str) -> str:
        """Ledger reference for repeatable actions."""
        return build_idempotency_key(user_id, action, uuid.uuid4().hex)


def new_id() -> str:
    return uuid.uuid4().hex
