"""Tests del entry point."""

from unittest.mock import MagicMock, patch

import pytest

from common.config import ConfigError
from qingping_bridge.cli import main, parse_args
from qingping_bridge.runner import CycleStats


def test_parse_args_defaults():
    cfg = parse_args([])
    assert cfg.once is False
    assert cfg.interval_seconds is None


def test_parse_args_overrides():
    cfg = parse_args(["--once", "--interval-seconds", "30", "--env-file", "x.env", "--log-level", "debug"])
    assert cfg.once is True
    assert cfg.interval_seconds == 30.0
    assert cfg.env_file == "x.env"
    assert cfg.log_level == "DEBUG"


def test_once_success(settings):
    with patch("qingping_bridge.cli.get_settings", return_value=settings), \
         patch("qingping_bridge.cli.run_cycle", return_value=CycleStats(ok=True)) as run:
        main(["--once"])

    run.assert_called_once_with(settings)


def test_once_failure_exit_code(settings):
    with patch("qingping_bridge.cli.get_settings", return_value=settings), \
         patch("qingping_bridge.cli.run_cycle", return_value=CycleStats(ok=False, error="boom")):
        with pytest.raises(SystemExit) as exc:
            main(["--once"])

    assert exc.value.code == 1


def test_invalid_config_exits(settings):
    with patch("qingping_bridge.cli.get_settings", side_effect=ConfigError("APP_KEY missing")):
        with pytest.raises(SystemExit) as exc:
            main(["--once"])

    assert exc.value.code == 2


def test_scheduler_mode_starts_and_stops(settings):
    scheduler = MagicMock()
    scheduler.wait.side_effect = KeyboardInterrupt

    with patch("qingping_bridge.cli.get_settings", return_value=settings), \
         patch("qingping_bridge.cli.IntervalScheduler", return_value=scheduler) as sched_cls, \
         patch("qingping_bridge.cli.signal.signal"):
        main(["--interval-seconds", "5"])

    assert sched_cls.call_args.kwargs["interval_seconds"] == 5.0
    scheduler.start.assert_called_once()
    scheduler.stop.assert_called_once()
