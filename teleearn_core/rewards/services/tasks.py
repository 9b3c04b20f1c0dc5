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
from dataclasses import dataclass
from datetime import datetime

from teleearn_core.rewards import calculator, idempotency
from teleearn_core.rewards.errors import QuestNotFoundError
from teleearn_core.rewards.ledger import build_idempotency_key
from teleearn_core.rewards.services.base import RewardService
from teleearn_core.rewards.store import UnitOfWork
from teleearn_core.rewards.types import (
    Account,
    QuestProgress,
    TaskCompletion,
    TaskType,
    UserAccount,
)
from teleearn_core.schema.catalog import Quest
from teleearn_core.schema.requests import TaskCompletionRequest, parse_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    reward: int
    completion: TaskCompletion
    user: UserAccount


@dataclass(frozen=True, slots=True)
class QuestOutcome:
    reward: int
    progress: QuestProgress
    user: UserAccount


@dataclass(frozen=True, slots=True)
class QuestStatus:
    quest_id: int
    progress: int
    target: int
    is_completed: bool


class TaskService(RewardService):
    def complete_task(self, user_id: str, task_type: TaskType | str, task_id: int) -> TaskOutcome:
        request = parse_request(TaskCompletionRequest, task_type=task_type, task_id=task_id)
        if request.task_type == TaskType.APP:
            task = self.catalog.get_app_task(request.task_id)
        else:
            task = self.catalog.get_link_task(request.task_id)
        reward = calculator.task_reward(request.task_type, task, self.cfg)
        now = self.now()

        def _complete(uow: UnitOfWork) -> TaskOutcome:
            self.require_user(uow)
            completion = idempotency.claim_task_completion(uow, request.task_type, request.task_id, now)
            user = self.ledger.credit(
                uow,
                Account.POINTS,
                reward,
                reason=f"{request.task_type.value}_task",
                ref=completion.key,
                now=now,
            )
            return TaskOutcome(reward=reward, completion=completion, user=user)

        outcome = self.store.atomic(user_id, _complete)
        logger.info(
            "[Tasks] user=%s %s task=%s reward=%s",
            user_id, request.task_type.value, request.task_id, reward,
        )
        return outcome

    def _progress(self, uow: UnitOfWork, quest: Quest, user: UserAccount, now: datetime) -> int:
        return calculator.recompute_quest_progress(
            quest,
            user,
            referral_count=uow.count_referrals(),
            completion_count=uow.count_task_completions(),
            now=now,
        )

    def claim_quest(self, user_id: str, quest_id: int) -> QuestOutcome:
        quest = self.catalog.get_quest(quest_id)
        if quest is None:
            raise QuestNotFoundError(f"Quest {quest_id} not found", quest_id=quest_id)
        now = self.now()

        def _claim(uow: UnitOfWork) -> QuestOutcome:
            user = self.require_user(uow)
            progress = self._progress(uow, quest, user, now)
            claimed = idempotency.claim_quest(uow, quest, progress, now)
            reward = calculator.quest_reward(quest)
            user = self.ledger.credit(
                uow,
                Account.POINTS,
                reward,
                reason="quest",
                ref=build_idempotency_key(user_id, "quest", str(quest.id)),
                now=now,
            )
            return QuestOutcome(reward=reward, progress=claimed, user=user)

        outcome = self.store.atomic(user_id, _claim)
        logger.info("[Quests] user=%s quest=%s reward=%s", user_id, quest_id, outcome.reward)
        return outcome

    def get_quest_status(self, user_id: str, quest_id: int) -> QuestStatus:
        quest = self.catalog.get_quest(quest_id)
        if quest is None:
            raise QuestNotFoundError(f"Quest {quest_id} not found", quest_id=quest_id)
        now = self.now()

        def _status(uow: UnitOfWork) -> QuestStatus:
            user = self.require_user(uow)
            stored = uow.get_quest_progress(quest.id)
            return QuestStatus(
                quest_id=quest.id,
                progress=self._progress(uow, quest, user, now),
                target=quest.target,
                is_completed=bool(stored and stored.is_completed),
            )

        return self.store.atomic(user_id, _status)
