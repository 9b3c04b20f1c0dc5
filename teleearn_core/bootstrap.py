# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Wiring of stores, catalog and facade from a TeleEarnConfig."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple

from firebase_admin import firestore, get_app, initialize_app
from firebase_admin.credentials import Certificate

from teleearn_core.config import TeleEarnConfig
from teleearn_core.rewards.adapters.firestore import FirestoreCatalog, FirestoreRewardStore
from teleearn_core.rewards.adapters.memory import InMemoryCatalog, InMemoryRewardStore
from teleearn_core.rewards.config import RewardsConfig
from teleearn_core.rewards.config_loader import load_rewards_config
from teleearn_core.rewards.facade import RewardsFacade
from teleearn_core.rewards.store import CatalogStore, RewardStore

logger = logging.getLogger(__name__)


def get_firebase_app(settings: TeleEarnConfig):  # type: ignore[no-untyped-def]
    """Get or initialize the Firebase Admin app."""
    try:
        return get_app()
    except ValueError:
        options = {"projectId": settings.firestore_project} if settings.firestore_project else None
        if settings.credentials_path:
            return initialize_app(credential=Certificate(settings.credentials_path), options=options)
        return initialize_app(options=options)


def read_json(path: str | Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    with open(p) as f:
        return json.load(f)


def build_backend(
    settings: TeleEarnConfig,
    rewards_config: RewardsConfig,
) -> Tuple[RewardStore, CatalogStore]:
    if settings.store_backend == "firestore":
        db = firestore.client(app=get_firebase_app(settings))
        logger.info("[Bootstrap] Firestore backend (project=%s)", settings.firestore_project or "default")
        return (
            FirestoreRewardStore(db, config=rewards_config),
            FirestoreCatalog(db, config=rewards_config),
        )
    store = InMemoryRewardStore.restore(read_json(settings.state_file))
    catalog = InMemoryCatalog.from_dict(read_json(settings.catalog_file))
    logger.debug("[Bootstrap] Memory backend (state=%s)", settings.state_file)
    return store, catalog


def build_facade(settings: TeleEarnConfig | None = None) -> RewardsFacade:
    settings = settings or TeleEarnConfig.from_env()
    rewards_config = load_rewards_config(settings.rewards_config_path)
    store, catalog = build_backend(settings, rewards_config)
    return RewardsFacade(store=store, catalog=catalog, config=rewards_config)
