from __future__ import annotations

import re
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from once import __version__
from once.cli import app
from once.config import StateConfig
from once.identity import resolve_identity
from once.lock import LockManager

runner = CliRunner()

OK = [sys.executable, "-c", "pass"]
FAIL = [sys.executable, "-c", "raise SystemExit(3)"]


def _invoke(state_dir: Path, *args: str):
    return runner.invoke(app, ["--state-dir", str(state_dir), *args])


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_window_runs_then_skips(workdir: Path) -> None:
    state = workdir / "state"

    first = _invoke(state, "--window", "1h", "--", *OK)
    assert first.exit_code == 0
    token = resolve_identity(OK).token
    assert (state / "windows" / f"{token}.stamp").exists()

    second = _invoke(state, "--window", "1h", "--", *OK)
    assert second.exit_code == 3
    assert re.search(r"Skipped: ran \d+s ago; window 1h\.", second.output)


def test_default_mode_is_daily_period(workdir: Path) -> None:
    state = workdir / "state"

    assert _invoke(state, "--", *OK).exit_code == 0
    buckets = list((state / "periods").iterdir())
    assert len(buckets) == 1
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", buckets[0].name)

    second = _invoke(state, "--", *OK)
    assert second.exit_code == 3
    assert f"Skipped: already ran during {buckets[0].name}." in second.output


def test_command_without_separator_keeps_its_options(workdir: Path) -> None:
    state = workdir / "state"
    result = _invoke(state, "--period", "week", *OK)
    assert result.exit_code == 0
    assert len(list((state / "periods").glob("*-W*/*.stamp"))) == 1


def test_failed_command_exits_one_without_stamp(workdir: Path) -> None:
    state = workdir / "state"

    result = _invoke(state, "--window", "1h", "--", *FAIL)
    assert result.exit_code == 1
    assert not (state / "windows").exists() or not any((state / "windows").iterdir())

    assert _invoke(state, "--window", "1h", "--", *FAIL).exit_code == 1


def test_dry_run_reports_and_never_stamps(workdir: Path) -> None:
    state = workdir / "state"

    result = _invoke(state, "--period", "hour", "--dry-run", "--", *OK)
    assert result.exit_code == 0
    assert "DRY-RUN: would RUN (first run in hour:" in result.output
    assert not (state / "periods").exists()

    forced = _invoke(state, "--window", "2d", "--force", "--dry-run", "--", *OK)
    assert forced.exit_code == 0
    assert "DRY-RUN: would RUN (forced)" in forced.output

    assert _invoke(state, "--window", "2d", "--", *OK).exit_code == 0
    skipped = _invoke(state, "--window", "2d", "--dry-run", "--", *OK)
    assert skipped.exit_code == 3
    assert re.search(r"DRY-RUN: would SKIP \(ran \d+s ago; window 2d\)", skipped.output)


def test_force_reruns(workdir: Path) -> None:
    state = workdir / "state"
    assert _invoke(state, "--", *OK).exit_code == 0
    assert _invoke(state, "--force", "--", *OK).exit_code == 0


def test_key_extra_makes_independent_identities(workdir: Path) -> None:
    state = workdir / "state"
    assert _invoke(state, "--period", "day", "--key-extra", "staging", "--", *OK).exit_code == 0
    assert _invoke(state, "--period", "day", "--key-extra", "prod", "--", *OK).exit_code == 0
    assert _invoke(state, "--period", "day", "--key-extra", "prod", "--", *OK).exit_code == 3


def test_busy_when_another_invocation_holds_the_lock(workdir: Path) -> None:
    state = workdir / "state"
    token = resolve_identity(OK).token

    with LockManager(StateConfig(state_dir=state)).acquire(token):
        result = _invoke(state, "--", *OK)

    assert result.exit_code == 4
    assert "Another instance is already running for this key." in result.output
    assert not (state / "periods").exists()


def test_explain_prints_derived_state(workdir: Path) -> None:
    result = _invoke(workdir / "state", "--explain", "--window", "90m", "--dry-run", "--", *OK)
    assert result.exit_code == 0
    assert f"once v{__version__}" in result.output
    for field in ("period", "window", "bucket", "lock", "stamp", "hash"):
        assert field in result.output
    assert "90m" in result.output


@pytest.mark.parametrize(
    "args",
    [
        ["--period", "day", "--window", "1h", "--", *OK],
        ["--window", "5x", "--", *OK],
        ["--period", "year", "--", *OK],
        ["--window", "1h"],
        ["--window"],
        ["--no-such-flag", "--", *OK],
        ["--", "definitely-not-a-real-command-once"],
    ],
)
def test_usage_and_resolution_errors_exit_one(workdir: Path, args: list[str]) -> None:
    state = workdir / "state"
    result = _invoke(state, *args)
    assert result.exit_code == 1
    assert not (state / "locks").exists()


def test_error_messages(workdir: Path) -> None:
    state = workdir / "state"
    both = _invoke(state, "--period", "day", "--window", "1h", "--", *OK)
    assert "Use either --period or --window, not both." in both.output
    missing = _invoke(state, "--", "definitely-not-a-real-command-once")
    assert "Command not found: definitely-not-a-real-command-once" in missing.output
    bad = _invoke(state, "--window", "5x", "--", *OK)
    assert "Invalid duration: 5x" in bad.output


def test_no_arguments_prints_help() -> None:
    result = runner.invoke(app, [])
    assert result.exit_code == 0


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"once {__version__}" in result.output


def test_state_dir_defaults_to_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg"))
    result = runner.invoke(app, ["--window", "1h", "--", *OK])
    assert result.exit_code == 0
    assert any((tmp_path / "xdg" / "once" / "windows").iterdir())
