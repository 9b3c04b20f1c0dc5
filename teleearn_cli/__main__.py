# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 TeleEarn Contributors
from teleearn_cli.rewards_cmd import main

main()
