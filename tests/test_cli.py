from __future__ import annotations

import json
import os

import pytest

from counter_pos import cli


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setattr(os, "environ", {key: value for key, value in os.environ.items() if not key.startswith("COUNTER_POS_")})
    monkeypatch.chdir(tmp_path)


def test_demo_prints_split_tender_receipt(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["demo", "--cash", "30.00"])

    receipt = json.loads(capsys.readouterr().out)
    assert receipt["total"] == "54.00"
    assert [payment["method_name"] for payment in receipt["payments"]] == ["Cash", "Card"]
    assert receipt["pending_sync"] is False


def test_demo_offline_marks_receipt_pending(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["demo", "--offline", "--cash", "60.00"])

    receipt = json.loads(capsys.readouterr().out)
    assert receipt["pending_sync"] is True
    assert receipt["change_due"] == "6.00"


def test_demo_exits_nonzero_on_bad_config(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("COUNTER_POS_TAX_RATE", "2")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["demo"])

    assert excinfo.value.code == 1
    assert json.loads(capsys.readouterr().out)["error"] == "CONFIG_ERROR"
