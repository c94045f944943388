from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from emission.cli import app
from emission.tests import ALICE

runner = CliRunner()

WINDOW = ["--start", "2", "--end", "12", "--allocation", "10"]


@pytest.fixture(autouse=True)
def _clean(env_clean):
    yield


def test_config_prints_resolved_json(monkeypatch):
    monkeypatch.setenv("EMISSION_TOKEN_SYMBOL", "EMT")
    r = runner.invoke(app, ["config"])
    assert r.exit_code == 0, r.stdout
    out = json.loads(r.stdout)
    assert out["token"]["symbol"] == "EMT"
    assert out["derived"]["total_allocation"] == out["schedule"]["allocation_per_entity"] * out["schedule"]["entity_count"]


def test_bad_config_exits_2(monkeypatch):
    monkeypatch.setenv("EMISSION_END_TIME", "1")
    r = runner.invoke(app, ["config"])
    assert r.exit_code == 2
    assert "config error" in r.stdout


def test_schedule_json_reaches_full_allocation():
    r = runner.invoke(app, ["schedule", *WINDOW, "--points", "10", "--json"])
    assert r.exit_code == 0, r.stdout
    out = json.loads(r.stdout)
    assert out["config"]["emission_rate_per_second"] == 1
    pts = out["points"]
    assert [p["t"] for p in pts] == list(range(2, 13))
    assert pts[0]["claimable"] == 0
    assert pts[3]["claimable"] == 3
    assert pts[-1]["claimable"] == 10 and pts[-1]["pct"] == 100.0


def test_schedule_table_output():
    r = runner.invoke(app, ["schedule", *WINDOW, "--points", "2"])
    assert r.exit_code == 0, r.stdout
    assert "rate 1/s" in r.stdout
    assert "CLAIMABLE" in r.stdout


def test_peek_walkthrough_step():
    r = runner.invoke(app, ["peek", *WINDOW, "--last", "3", "--claimed", "1", "--at", "5", "--json"])
    assert r.exit_code == 0, r.stdout
    assert json.loads(r.stdout) == {"claimable": 2, "accrual_time": 5}


def test_peek_final_tick_pays_remainder():
    r = runner.invoke(app, ["peek", *WINDOW, "--last", "5", "--claimed", "3", "--at", "40"])
    assert r.exit_code == 0, r.stdout
    assert "claimable=7 accrual_time=12" in r.stdout


def test_peek_overclaimed_state_fails():
    r = runner.invoke(app, ["peek", *WINDOW, "--claimed", "11", "--at", "12"])
    assert r.exit_code == 2


def test_inspect_clean_and_corrupted_snapshot(funded, tmp_path):
    funded.clock.set(6)
    funded.stream.claim(ALICE, [1, 2])
    snap = funded.stream.dump()

    good = tmp_path / "state.json"
    good.write_text(json.dumps(snap), encoding="utf-8")
    r = runner.invoke(app, ["inspect", str(good), "--json"])
    assert r.exit_code == 0, r.stdout
    out = json.loads(r.stdout)
    assert out["stream_count"] == 2
    assert out["ledger_sum"] == 8
    assert out["token_balance"] == 32
    assert out["problems"] == []

    snap["financing"]["total_claimed"] += 1
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps(snap), encoding="utf-8")
    r = runner.invoke(app, ["inspect", str(bad)])
    assert r.exit_code == 1
    assert "INVARIANT" in r.stdout
