"""Tests for Settings configuration model."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from regular.config import Settings
from regular.scheduler.models import Config, Period


class TestDefaults:
    def test_default_name(self):
        s = Settings()
        assert s.name == "regular"

    def test_default_periods_empty(self):
        s = Settings()
        assert s.periods == []

    def test_default_intervals(self):
        s = Settings()
        assert s.success_interval == 0
        assert s.fail_interval == 0

    def test_default_tick(self):
        s = Settings()
        assert s.tick_seconds == 60.0

    def test_default_log_level(self):
        s = Settings()
        assert s.log_level == "INFO"


class TestValidation:
    def test_periods_from_dicts(self):
        s = Settings(periods=[{"start": "09:00", "end": "17:00"}])
        assert s.periods == [Period(start="09:00", end="17:00")]

    def test_tick_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(tick_seconds=0)

    def test_env_ignored_under_pytest(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("REGULAR_NAME", "from-env")
        assert Settings().name == "regular"


class TestToConfig:
    def test_builds_engine_config(self):
        s = Settings(
            name="nightly",
            periods=[{"start": "22:00", "end": "06:00"}],
            success_interval=1000,
            fail_interval=-1,
        )
        assert s.to_config() == Config(
            name="nightly",
            periods=(Period(start="22:00", end="06:00"),),
            success_interval=1000,
            fail_interval=-1,
        )

    def test_bad_period_survives_until_parsed(self):
        config = Settings(periods=[{"start": "25:00", "end": "06:00"}]).to_config()
        with pytest.raises(ValueError, match="time period 0"):
            config.parse_windows()


class TestFromYaml:
    def test_loads_mapping(self, tmp_path: Path):
        path = tmp_path / "schedule.yaml"
        path.write_text(
            "name: backup\n"
            "periods:\n"
            "  - start: '01:00'\n"
            "    end: '05:00'\n"
            "success_interval: 60000\n"
        )
        s = Settings.from_yaml(path)
        assert s.name == "backup"
        assert s.periods == [Period(start="01:00", end="05:00")]
        assert s.success_interval == 60000
        assert s.fail_interval == 0

    def test_overrides_win(self, tmp_path: Path):
        path = tmp_path / "schedule.yaml"
        path.write_text("name: backup\nfail_interval: 100\n")
        s = Settings.from_yaml(path, name="override", fail_interval=None)
        assert s.name == "override"
        assert s.fail_interval == 100

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Settings.from_yaml(path).name == "regular"

    def test_rejects_non_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            Settings.from_yaml(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml(tmp_path / "missing.yaml")
