"""Tests for the command-line entry point."""

import argparse
import functools
import sys
from pathlib import Path

import pytest

from regular import main as main_module
from regular.main import (
    EXIT_FAILED,
    EXIT_OK,
    EXIT_USAGE,
    build_parser,
    load_settings,
    main,
    parse_period,
)
from regular.scheduler.engine import Engine
from regular.scheduler.models import Period


@pytest.fixture
def fast_engine(monkeypatch: pytest.MonkeyPatch, clock) -> None:
    """Skip the real minute alignment by pinning the engine clock."""
    monkeypatch.setattr(main_module, "Engine", functools.partial(Engine, clock=clock))


# -- parse_period --------------------------------------------------------------


def test_parse_period() -> None:
    assert parse_period("22:00-06:00") == {"start": "22:00", "end": "06:00"}


def test_parse_period_strips_spaces() -> None:
    assert parse_period(" 9:00 - 17:00 ") == {"start": "9:00", "end": "17:00"}


@pytest.mark.parametrize("value", ["0900", "09:00-", "-17:00"])
def test_parse_period_invalid(value: str) -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        parse_period(value)


# -- load_settings -------------------------------------------------------------


def test_load_settings_from_flags() -> None:
    args = build_parser().parse_args(
        ["--name", "job", "--period", "09:00-17:00", "--success-interval", "-1", "--", "true"]
    )
    s = load_settings(args)
    assert s.name == "job"
    assert s.periods == [Period(start="09:00", end="17:00")]
    assert s.success_interval == -1
    assert s.fail_interval == 0


def test_load_settings_flags_override_yaml(tmp_path: Path) -> None:
    path = tmp_path / "schedule.yaml"
    path.write_text("name: from-file\nfail_interval: 250\n")
    args = build_parser().parse_args(["--config", str(path), "--name", "from-flag", "--", "true"])
    s = load_settings(args)
    assert s.name == "from-flag"
    assert s.fail_interval == 250


# -- main ----------------------------------------------------------------------


def test_main_requires_command() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--name", "job"])
    assert exc_info.value.code == EXIT_USAGE


def test_main_rejects_bad_period(capsys: pytest.CaptureFixture) -> None:
    assert main(["--period", "25:00-06:00", "--", "true"]) == EXIT_USAGE
    assert "time period 0" in capsys.readouterr().err


def test_main_rejects_missing_config_file(tmp_path: Path) -> None:
    assert main(["--config", str(tmp_path / "nope.yaml"), "--", "true"]) == EXIT_USAGE


@pytest.mark.usefixtures("fast_engine")
def test_main_runs_command_once() -> None:
    code = main(["--success-interval", "-1", "--", sys.executable, "-c", "pass"])
    assert code == EXIT_OK


@pytest.mark.usefixtures("fast_engine")
def test_main_reports_fatal_failure() -> None:
    code = main(["--fail-interval", "-1", "--", sys.executable, "-c", "import sys; sys.exit(4)"])
    assert code == EXIT_FAILED
