# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Reward engine error taxonomy.

Every expected failure is a ``RewardError`` subclass carrying a stable,
machine-readable ``reason``. Validation and not-found errors are raised
before any state is touched; eligibility errors are terminal for the
request; ``LedgerConsistencyError`` is fatal and never caught by the core.
"""

from __future__ import annotations

from typing import Any, Dict


class RewardError(RuntimeError):
    reason: str = "reward_error"

    def __init__(self, message: str = "", **details: Any) -> None:
        super().__init__(message or self.reason)
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.reason, "message": str(self), **self.details}


class RewardValidationError(RewardError):
    reason = "invalid_request"


class DuplicateUserError(RewardValidationError):
    reason = "user_exists"


# -----------------------------------------------------------------------------
# Not found
# -----------------------------------------------------------------------------


class NotFoundError(RewardError):
    reason = "not_found"


class UserNotFoundError(NotFoundError):
    reason = "user_not_found"


class QuestNotFoundError(NotFoundError):
    reason = "quest_not_found"


class PackageNotFoundError(NotFoundError):
    reason = "package_not_found"


class InvestmentNotFoundError(NotFoundError):
    reason = "investment_not_found"


class RequestNotFoundError(NotFoundError):
    reason = "request_not_found"


# -----------------------------------------------------------------------------
# Eligibility
# -----------------------------------------------------------------------------


class EligibilityError(RewardError):
    reason = "not_eligible"


class CooldownActiveError(EligibilityError):
    reason = "cooldown_active"

    def __init__(self, wait_seconds: int) -> None:
        super().__init__(f"Please wait {wait_seconds} seconds", wait_seconds=wait_seconds)
        self.wait_seconds = wait_seconds


class DailyLimitReachedError(EligibilityError):
    reason = "daily_limit_reached"


class DailyBonusNotReadyError(EligibilityError):
    reason = "daily_bonus_not_ready"

    def __init__(self, wait_ms: int) -> None:
        super().__init__("Daily bonus is not available yet", wait_ms=wait_ms)
        self.wait_ms = wait_ms


class AlreadyClaimedTodayError(EligibilityError):
    reason = "already_claimed_today"


class TaskAlreadyCompletedError(EligibilityError):
    reason = "task_already_completed"


class QuestNotCompletedError(EligibilityError):
    reason = "quest_not_completed"

    def __init__(self, progress: int, target: int) -> None:
        super().__init__(
            f"Quest not completed yet. Progress: {progress}/{target}",
            progress=progress,
            target=target,
        )
        self.progress = progress
        self.target = target


class AlreadyClaimedError(EligibilityError):
    reason = "already_claimed"


class InsufficientBalanceError(EligibilityError):
    reason = "insufficient_balance"


class InsufficientPointsError(InsufficientBalanceError):
    reason = "insufficient_points"


class BelowMinimumError(EligibilityError):
    reason = "below_minimum"


class InvestmentExpiredError(EligibilityError):
    reason = "investment_expired"


class InvestmentAdLimitReachedError(EligibilityError):
    reason = "investment_ad_limit_reached"


class TaskAlreadyCompletedTodayError(EligibilityError):
    reason = "task_already_completed_today"


class RequestAlreadyProcessedError(EligibilityError):
    reason = "request_already_processed"


# -----------------------------------------------------------------------------
# Fatal
# -----------------------------------------------------------------------------


class LedgerConsistencyError(RewardError):
    reason = "ledger_inconsistent"
