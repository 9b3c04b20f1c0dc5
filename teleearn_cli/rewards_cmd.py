# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Rewards CLI Commands

Each command takes an exclusive lock next to the state file, loads it,
runs one facade operation with the in-memory store and writes the state
back (also when the operation is rejected). Reward errors are printed as
JSON on stderr with exit code 1.
"""

from __future__ import annotations

import argparse
import fcntl
import json
import logging
import os
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, NoReturn

from teleearn_core.bootstrap import read_json
from teleearn_core.config import TeleEarnConfig
from teleearn_core.rewards.adapters.memory import InMemoryCatalog, InMemoryRewardStore
from teleearn_core.rewards.config_loader import load_rewards_config
from teleearn_core.rewards.errors import RewardError
from teleearn_core.rewards.facade import RewardsFacade
from teleearn_core.schema.serialization import dump_schema

logger = logging.getLogger(__name__)

Operation = Callable[[RewardsFacade], Any]


def _settings(args: argparse.Namespace) -> TeleEarnConfig:
    settings = TeleEarnConfig.from_env()
    updates = {}
    if args.state:
        updates["state_file"] = args.state
    if args.catalog:
        updates["catalog_file"] = args.catalog
    if args.config:
        updates["rewards_config_path"] = args.config
    return settings.model_copy(update=updates)


def _to_json(result: Any) -> Any:
    if isinstance(result, list):
        return {"items": [dump_schema(item) for item in result]}
    return dump_schema(result)


@contextmanager
def _locked_state(state_path: Path) -> Iterator[None]:
    """Hold an exclusive lock on ``<state>.lock`` for a load/operate/save cycle."""
    lock_path = state_path.with_name(state_path.name + ".lock")
    with open(lock_path, "a") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def _save_state(state_path: Path, store: InMemoryRewardStore) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=state_path.name + ".", suffix=".tmp", dir=state_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(store.snapshot(), f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, state_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _execute(args: argparse.Namespace, operation: Operation) -> int:
    settings = _settings(args)
    state_path = Path(settings.state_file).resolve()
    state_path.parent.mkdir(parents=True, exist_ok=True)

    with _locked_state(state_path):
        store = InMemoryRewardStore.restore(read_json(state_path))
        catalog = InMemoryCatalog.from_dict(read_json(settings.catalog_file))
        facade = RewardsFacade(
            store=store,
            catalog=catalog,
            config=load_rewards_config(settings.rewards_config_path),
        )

        # The store only holds committed units of work, so state written
        # before a rejection (e.g. lazy investment expiry) is kept.
        try:
            result = operation(facade)
        except RewardError as e:
            print(json.dumps(e.to_dict(), ensure_ascii=False, default=str), file=sys.stderr)
            return 1
        finally:
            _save_state(state_path, store)

    print(json.dumps(_to_json(result), ensure_ascii=False, indent=2))
    return 0


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------


def cmd_register(args: argparse.Namespace) -> int:
    """Find or create a user by Telegram id."""
    return _execute(
        args,
        lambda f: f.register_user(
            external_id=args.external_id,
            username=args.username or "",
            first_name=args.first_name or "",
            referral_code=args.referral_code,
        ),
    )


def cmd_user(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.get_user(user_id=args.user_id))


def cmd_history(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.ledger_history(user_id=args.user_id, limit=args.limit))


# -----------------------------------------------------------------------------
# Ads, bonus, streak
# -----------------------------------------------------------------------------


def cmd_watch_ad(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.watch_ad(user_id=args.user_id))


def cmd_reset_ads(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.reset_daily_ad_limit(user_id=args.user_id))


def cmd_ad_status(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.get_ad_status(user_id=args.user_id))


def cmd_daily_bonus(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.claim_daily_bonus(user_id=args.user_id))


def cmd_streak_status(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.get_streak_status(user_id=args.user_id))


def cmd_claim_streak(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.claim_daily_streak(user_id=args.user_id))


# -----------------------------------------------------------------------------
# Tasks & quests
# -----------------------------------------------------------------------------


def cmd_complete_task(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.complete_task(user_id=args.user_id, task_type=args.task_type, task_id=args.task_id),
    )


def cmd_claim_quest(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.claim_quest(user_id=args.user_id, quest_id=args.quest_id))


# -----------------------------------------------------------------------------
# Exchange
# -----------------------------------------------------------------------------


def cmd_quote(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.quote_exchange(points=args.points, currency=args.currency))


def cmd_exchange(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.exchange_points(user_id=args.user_id, points=args.points, currency=args.currency),
    )


def cmd_to_coins(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.convert_points_to_coins(user_id=args.user_id, points=args.points))


# -----------------------------------------------------------------------------
# Investments
# -----------------------------------------------------------------------------


def cmd_subscribe(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.subscribe_investment(user_id=args.user_id, package_id=args.package_id),
    )


def cmd_investments(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.list_investments(user_id=args.user_id, active_only=args.active_only),
    )


def cmd_investment_task(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.complete_investment_task(user_id=args.user_id, investment_id=args.investment_id),
    )


def cmd_investment_ad(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.watch_investment_ad(user_id=args.user_id, investment_id=args.investment_id),
    )


def cmd_transfer_to_main(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.transfer_investment_to_main(
            user_id=args.user_id, amount=args.amount, currency=args.currency
        ),
    )


# -----------------------------------------------------------------------------
# Wallet
# -----------------------------------------------------------------------------


def cmd_withdraw(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.create_withdrawal(
            user_id=args.user_id,
            amount=args.amount,
            currency=args.currency,
            method=args.method,
            account_details=args.account_details,
        ),
    )


def cmd_approve_withdrawal(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.approve_withdrawal(request_id=args.request_id))


def cmd_reject_withdrawal(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.reject_withdrawal(request_id=args.request_id))


def cmd_deposit(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.create_deposit(
            user_id=args.user_id,
            amount=args.amount,
            currency=args.currency,
            method=args.method,
            deposit_type=args.deposit_type,
            account_details=args.account_details,
            transaction_proof=args.transaction_proof,
        ),
    )


def cmd_approve_deposit(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.approve_deposit(request_id=args.request_id))


def cmd_reject_deposit(args: argparse.Namespace) -> int:
    return _execute(args, lambda f: f.reject_deposit(request_id=args.request_id))


def cmd_refer(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda f: f.create_referral(referrer_id=args.referrer_id, referred_id=args.referred_id),
    )


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------


def _user_command(subparsers: Any, name: str, help_text: str, func: Callable[[argparse.Namespace], int]):  # type: ignore[no-untyped-def]
    parser = subparsers.add_parser(name, help=help_text)
    parser.add_argument("user_id", help="User id")
    parser.set_defaults(func=func)
    return parser


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="teleearn-cli",
        description="TeleEarn reward engine commands",
    )
    parser.add_argument("--state", help="State JSON file (default: $TELEEARN_STATE_FILE)")
    parser.add_argument("--catalog", help="Catalog JSON file (default: $TELEEARN_CATALOG_FILE)")
    parser.add_argument("--config", help="Rewards config JSON file")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("TELEEARN_LOG_LEVEL", "WARNING"),
        help="Log level (default: $TELEEARN_LOG_LEVEL or WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    register_parser = subparsers.add_parser("register", help="Find or create a user")
    register_parser.add_argument("external_id", help="Telegram user id")
    register_parser.add_argument("--username")
    register_parser.add_argument("--first-name")
    register_parser.add_argument("--referral-code", help="Referral code of the inviting user")
    register_parser.set_defaults(func=cmd_register)

    _user_command(subparsers, "user", "Show a user and balances", cmd_user)

    history_parser = _user_command(subparsers, "history", "Show ledger entries", cmd_history)
    history_parser.add_argument("--limit", type=int, default=50)

    _user_command(subparsers, "watch-ad", "Watch an ad for points", cmd_watch_ad)
    _user_command(subparsers, "reset-ads", "Reset the daily ad counter", cmd_reset_ads)
    _user_command(subparsers, "ad-status", "Show ad eligibility", cmd_ad_status)
    _user_command(subparsers, "daily-bonus", "Claim the 30-minute bonus", cmd_daily_bonus)
    _user_command(subparsers, "streak-status", "Show daily streak eligibility", cmd_streak_status)
    _user_command(subparsers, "claim-streak", "Claim the daily streak reward", cmd_claim_streak)

    task_parser = _user_command(subparsers, "complete-task", "Complete an app/link task", cmd_complete_task)
    task_parser.add_argument("task_type", choices=["app", "link"])
    task_parser.add_argument("task_id", type=int)

    quest_parser = _user_command(subparsers, "claim-quest", "Claim a quest reward", cmd_claim_quest)
    quest_parser.add_argument("quest_id", type=int)

    quote_parser = subparsers.add_parser("quote", help="Quote a points exchange")
    quote_parser.add_argument("points", type=int)
    quote_parser.add_argument("currency", choices=["usd", "egp"])
    quote_parser.set_defaults(func=cmd_quote)

    exchange_parser = _user_command(subparsers, "exchange", "Exchange points to usd/egp", cmd_exchange)
    exchange_parser.add_argument("points", type=int)
    exchange_parser.add_argument("currency", choices=["usd", "egp"])

    coins_parser = _user_command(subparsers, "to-coins", "Convert points to coins", cmd_to_coins)
    coins_parser.add_argument("points", type=int)

    subscribe_parser = _user_command(subparsers, "subscribe", "Subscribe to an investment package", cmd_subscribe)
    subscribe_parser.add_argument("package_id", type=int)

    investments_parser = _user_command(subparsers, "investments", "List investments", cmd_investments)
    investments_parser.add_argument("--active-only", action="store_true")

    inv_task_parser = _user_command(subparsers, "investment-task", "Complete the daily investment task", cmd_investment_task)
    inv_task_parser.add_argument("investment_id")

    inv_ad_parser = _user_command(subparsers, "investment-ad", "Watch an investment ad", cmd_investment_ad)
    inv_ad_parser.add_argument("investment_id")

    transfer_parser = _user_command(
        subparsers, "transfer-to-main", "Move investment funds to the main balance", cmd_transfer_to_main
    )
    transfer_parser.add_argument("amount", type=int, help="Minor units")
    transfer_parser.add_argument("currency", choices=["usd", "egp"])

    withdraw_parser = _user_command(subparsers, "withdraw", "Request a withdrawal", cmd_withdraw)
    withdraw_parser.add_argument("amount", type=int, help="Minor units")
    withdraw_parser.add_argument("currency", choices=["usd", "egp"])
    withdraw_parser.add_argument("method")
    withdraw_parser.add_argument("--account-details")

    deposit_parser = _user_command(subparsers, "deposit", "Request a deposit", cmd_deposit)
    deposit_parser.add_argument("amount", type=int, help="Minor units")
    deposit_parser.add_argument("currency", choices=["usd", "egp"])
    deposit_parser.add_argument("method")
    deposit_parser.add_argument("--deposit-type", choices=["main", "investment"], default="investment")
    deposit_parser.add_argument("--account-details")
    deposit_parser.add_argument("--transaction-proof")

    for name, func in (
        ("approve-withdrawal", cmd_approve_withdrawal),
        ("reject-withdrawal", cmd_reject_withdrawal),
        ("approve-deposit", cmd_approve_deposit),
        ("reject-deposit", cmd_reject_deposit),
    ):
        admin_parser = subparsers.add_parser(name, help=f"{name.replace('-', ' ').capitalize()} request")
        admin_parser.add_argument("request_id")
        admin_parser.set_defaults(func=func)

    refer_parser = subparsers.add_parser("refer", help="Record a referral")
    refer_parser.add_argument("referrer_id")
    refer_parser.add_argument("referred_id")
    refer_parser.set_defaults(func=cmd_refer)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the rewards CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        logger.exception("Unexpected failure in %s", args.command)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
