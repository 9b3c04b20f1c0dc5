# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of TeleEarn Core.
#
# TeleEarn Core is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Tests for the rewards CLI."""

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from teleearn_cli.rewards_cmd import create_parser, main


@pytest.fixture
def cli(tmp_path, capsys):
    state = tmp_path / "state.json"
    catalog = tmp_path / "catalog.json"
    catalog.write_text(
        json.dumps(
            {
                "ad_settings": {"points_per_view": 500, "daily_limit": 50, "cooldown_seconds": 15},
                "app_tasks": [{"id": 7, "name": "Install", "reward": 300}],
                "investment_packages": [
                    {
                        "id": 10, "type": "points", "price": 400, "number_of_days": 3,
                        "reward_per_task": 40, "reward_currency": "points",
                    }
                ],
            }
        )
    )

    def _run(*argv):
        with pytest.raises(SystemExit) as exc_info:
            main(["--state", str(state), "--catalog", str(catalog), *argv])
        captured = capsys.readouterr()
        out = json.loads(captured.out) if captured.out.strip() else None
        err = json.loads(captured.err) if captured.err.strip().startswith("{") else captured.err
        return exc_info.value.code, out, err

    _run.state = state
    _run.catalog = catalog
    return _run


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_register_persists_state(cli):
    code, out, _ = cli("register", "1001", "--username", "alice")
    assert code == 0
    assert out["created"] is True
    assert out["user"]["username"] == "alice"

    snapshot = json.loads(cli.state.read_text())
    assert [u["external_id"] for u in snapshot["users"]] == ["1001"]

    code, out, _ = cli("register", "1001")
    assert out["created"] is False


def test_task_then_duplicate_reports_error(cli):
    _, out, _ = cli("register", "1001")
    user_id = out["user"]["user_id"]

    code, out, _ = cli("complete-task", user_id, "app", "7")
    assert code == 0
    assert out["reward"] == 300
    assert out["user"]["points"] == 300

    code, out, err = cli("complete-task", user_id, "app", "7")
    assert code == 1
    assert out is None
    assert err["error"] == "task_already_completed"


def test_referral_registration_and_history(cli):
    _, out, _ = cli("register", "1")
    referrer = out["user"]
    _, out, _ = cli("register", "2", "--referral-code", referrer["referral_code"])
    assert out["user"]["points"] == 500

    _, out, _ = cli("user", referrer["user_id"])
    assert out["points"] == 1000

    _, out, _ = cli("history", referrer["user_id"])
    assert [e["reason"] for e in out["items"]] == ["referral"]


def test_investment_flow(cli):
    _, out, _ = cli("register", "1")
    user_id = out["user"]["user_id"]
    cli("complete-task", user_id, "app", "7")
    cli("complete-task", user_id, "app", "8")

    code, out, _ = cli("subscribe", user_id, "10")
    assert code == 0
    investment_id = out["investment"]["investment_id"]
    assert out["user"]["points"] == 0

    code, out, _ = cli("investment-task", user_id, investment_id)
    assert code == 0
    assert out["reward"] == 40

    _, out, _ = cli("investments", user_id, "--active-only")
    assert [i["investment_id"] for i in out["items"]] == [investment_id]


def test_quote_and_wallet(cli):
    code, out, _ = cli("quote", "500", "usd")
    assert code == 0
    assert out["amount"] == 5

    _, out, _ = cli("register", "1")
    user_id = out["user"]["user_id"]
    code, out, _ = cli("deposit", user_id, "250", "usd", "card", "--deposit-type", "main")
    request_id = out["request"]["request_id"]
    assert out["request"]["status"] == "pending"

    code, out, _ = cli("approve-deposit", request_id)
    assert out["user"]["usd_balance"] == 250

    code, out, _ = cli("withdraw", user_id, "200", "usd", "paypal")
    withdrawal_id = out["request"]["request_id"]
    assert out["user"]["usd_balance"] == 50

    code, out, _ = cli("reject-withdrawal", withdrawal_id)
    assert out["user"]["usd_balance"] == 250

    code, _, err = cli("reject-withdrawal", withdrawal_id)
    assert code == 1
    assert err["error"] == "request_already_processed"


def test_expiry_survives_rejected_command(cli):
    _, out, _ = cli("register", "1")
    user_id = out["user"]["user_id"]
    cli("complete-task", user_id, "app", "7")
    cli("complete-task", user_id, "app", "8")
    _, out, _ = cli("subscribe", user_id, "10")
    investment_id = out["investment"]["investment_id"]

    snapshot = json.loads(cli.state.read_text())
    snapshot["investments"][0]["end_date"] = "2000-01-01T00:00:00+00:00"
    cli.state.write_text(json.dumps(snapshot))

    code, out, err = cli("investment-ad", user_id, investment_id)
    assert code == 1
    assert out is None
    assert err["error"] == "investment_expired"

    snapshot = json.loads(cli.state.read_text())
    assert [i["is_active"] for i in snapshot["investments"]] == [False]


def test_concurrent_runs_are_serialized(cli, capsys):
    _, out, _ = cli("register", "1")
    user_id = out["user"]["user_id"]
    argv = ["--state", str(cli.state), "--catalog", str(cli.catalog), "complete-task", user_id, "app", "7"]
    barrier = threading.Barrier(8)

    def _call():
        barrier.wait()
        try:
            main(argv)
        except SystemExit as e:
            return e.code

    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(lambda _: _call(), range(8)))
    capsys.readouterr()

    assert sorted(codes) == [0] + [1] * 7
    _, out, _ = cli("user", user_id)
    assert out["points"] == 300
    _, out, _ = cli("history", user_id)
    assert len(out["items"]) == 1
    assert not list(cli.state.parent.glob("*.tmp"))
