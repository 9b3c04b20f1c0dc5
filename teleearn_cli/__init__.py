# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 TeleEarn Contributors
"""
TeleEarn CLI Module

Runs reward operations against a JSON state file and a JSON catalog file
using the in-memory store. Every command prints a JSON result.

Usage:
    python -m teleearn_cli register 123456 --username alice
    python -m teleearn_cli watch-ad <user_id>
    python -m teleearn_cli exchange <user_id> 500 usd
    python -m teleearn_cli --catalog catalog.json claim-quest <user_id> 1
"""

from teleearn_cli.rewards_cmd import main

__all__ = ["main"]

if __name__ == "__main__":
    main()
