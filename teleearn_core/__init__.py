# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
TeleEarn Core
=============

Reward-granting and balance-ledger engine for the TeleEarn mini-app.
"""

__version__ = "1.0.0"
