# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field


class TeleEarnConfig(BaseModel):
    """
    Deployment settings for the TeleEarn reward engine.
    Decouples the engine from environment variables.
    """

    # Storage
    store_backend: Literal["memory", "firestore"] = Field(
        "memory", description="Where user state lives: in-process memory or Firestore"
    )
    firestore_project: Optional[str] = Field(None, description="GCP project id for Firestore (optional)")
    credentials_path: Optional[str] = Field(
        None, description="Service account JSON for firebase_admin; default credentials when unset"
    )

    # Files used by the memory backend / CLI
    state_file: str = Field("teleearn_state.json", description="JSON snapshot of user state")
    catalog_file: Optional[str] = Field(None, description="JSON catalog (ad settings, tasks, quests, packages, rates)")

    # Business constants
    rewards_config_path: Optional[str] = Field(None, description="JSON file overriding RewardsConfig defaults")

    log_level: str = Field("INFO", description="Root log level")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TeleEarnConfig":
        env = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = env.get(f"TELEEARN_{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        if "credentials_path" not in values and env.get("GOOGLE_APPLICATION_CREDENTIALS"):
            values["credentials_path"] = env["GOOGLE_APPLICATION_CREDENTIALS"]
        return cls(**values)
