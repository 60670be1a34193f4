from __future__ import annotations

import json

import pytest

from app.solat import cli, config
from app.solat.service import SOURCE_UNAVAILABLE_MESSAGE
from tests.test_service import _FakeBackend, _service


def test_today_prints_schedule(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["today", "wly01"], service=_service(_FakeBackend("api")))

    out = capsys.readouterr().out
    assert code == 0
    assert "WLY01 - 292° 52′ 18″" in out
    assert "subuh" in out and "06:08" in out


def test_today_reports_unavailable_source(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["today", "WLY01"], service=_service(_FakeBackend("api", failing={"*"})))

    assert code == 1
    assert SOURCE_UNAVAILABLE_MESSAGE in capsys.readouterr().out


def test_history_without_rows(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["history", "wly02"], service=_service(_FakeBackend("api")))
    assert code == 0
    assert "No stored records for zone WLY02" in capsys.readouterr().out


def test_zones_lists_states(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["zones"], service=_service(_FakeBackend("api")))
    out = capsys.readouterr().out
    assert code == 0
    assert "Wilayah Persekutuan" in out
    assert "WLY02  Labuan" in out


def test_scrape_all_exit_code_reflects_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(config, "MAX_CONCURRENCY", 2)
    service = _service(_FakeBackend("api", failing={"JHR01"}))

    code = cli.main(["scrape-all", "--no-retry-failed"], service=service)

    out = capsys.readouterr().out
    assert code == 2
    assert "Total: 3, Success: 2, Errors: 1" in out
    assert "JHR01" in out


def test_scrape_state_unknown(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["scrape-state", "Atlantis", "--sequential"], service=_service(_FakeBackend("api")))
    assert code == 1
    assert "State 'Atlantis' not found" in capsys.readouterr().out


def test_health_prints_json(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["health"])
    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["ok"] is True


def test_invalid_config_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "BACKENDS", "nothing")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["today"], service=_service(_FakeBackend("api")))
    assert excinfo.value.code == 2
