# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Rewards configuration loader."""

from __future__ import annotations

import json
import os
from dataclasses import fields, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

from teleearn_core.rewards.config import RewardsConfig

ENV_PREFIX = "TELEEARN_"


def _coerce(current: Any, raw: Any) -> Any:
    if isinstance(current, bool):
        return str(raw).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(str(raw).strip())
    if isinstance(current, Decimal):
        return Decimal(str(raw).strip())
    return str(raw)


def load_rewards_config(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> RewardsConfig:
    """
    Load rewards config from JSON file with ENV overrides.

    Priority (highest to lowest):
    1. Environment variables (TELEEARN_<FIELD>, e.g. TELEEARN_MIN_EXCHANGE_POINTS)
    2. Provided config_path
    3. Default rewards JSON next to this module (if present)
    4. RewardsConfig defaults

    Unknown keys in the JSON file are ignored.
    """
    if config_path:
        with open(config_path) as f:
            data = json.load(f)
    else:
        default_path = Path(__file__).parent / "default_rewards.json"
        if default_path.exists():
            with open(default_path) as f:
                data = json.load(f)
        else:
            data = {}

    env = os.environ if environ is None else environ
    base = RewardsConfig()
    overrides: dict[str, Any] = {}
    for f in fields(RewardsConfig):
        current = getattr(base, f.name)
        raw = env.get(ENV_PREFIX + f.name.upper(), data.get(f.name))
        if raw is None:
            continue
        try:
            overrides[f.name] = _coerce(current, raw)
        except (ValueError, ArithmeticError) as exc:
            raise ValueError(f"Invalid value for {f.name}: {raw!r}") from exc

    return replace(base, **overrides)
