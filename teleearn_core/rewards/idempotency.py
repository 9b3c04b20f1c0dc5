# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Claim-once guards.

Each guard runs inside a unit of work that is serialized per user, so the
existence check and the witness write cannot be split by a racing request.
The caller credits the reward in the same unit of work.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from teleearn_core.rewards.errors import (
    AlreadyClaimedError,
    QuestNotCompletedError,
    TaskAlreadyCompletedError,
)
from teleearn_core.rewards.types import QuestProgress, Referral, TaskCompletion, TaskType

if TYPE_CHECKING:
    from teleearn_core.rewards.store import UnitOfWork
    from teleearn_core.schema.catalog import Quest


def claim_task_completion(
    uow: "UnitOfWork",
    task_type: TaskType,
    task_id: int,
    now: datetime,
) -> TaskCompletion:
    """Establish the completion witness, or raise if it already exists."""
    if uow.get_task_completion(task_type, task_id) is not None:
        raise TaskAlreadyCompletedError(
            "Task already completed",
            task_type=TaskType(task_type).value,
            task_id=task_id,
        )
    completion = TaskCompletion(
        user_id=uow.user_id,
        task_type=TaskType(task_type),
        task_id=task_id,
        completed_at=now,
    )
    uow.add_task_completion(completion)
    return completion


def claim_quest(
    uow: "UnitOfWork",
    quest: "Quest",
    progress: int,
    now: datetime,
) -> QuestProgress:
    """Gate on recomputed progress, then on the ``is_completed`` flag."""
    if progress < quest.target:
        raise QuestNotCompletedError(progress, quest.target)

    existing = uow.get_quest_progress(quest.id)
    if existing is not None and existing.is_completed:
        raise AlreadyClaimedError("Quest reward already claimed", quest_id=quest.id)

    claimed = QuestProgress(
        user_id=uow.user_id,
        quest_id=quest.id,
        progress=progress,
        is_completed=True,
        completed_at=now,
    )
    uow.put_quest_progress(claimed)
    return claimed


def claim_referral(
    uow: "UnitOfWork",
    referred_id: str,
    points: int,
    now: datetime,
) -> Optional[Referral]:
    """New referral for ``(uow.user_id, referred_id)``, or None if it exists."""
    if uow.get_referral(referred_id) is not None:
        return None
    referral = Referral(
        referrer_id=uow.user_id,
        referred_id=referred_id,
        points_earned=points,
        created_at=now,
    )
    uow.add_referral(referral)
    return referral
