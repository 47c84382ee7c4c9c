"""CLI entry point del bridge."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import signal
from typing import Optional, Sequence

from common.config import ConfigError, get_settings

from .config import RunnerConfig
from .runner import run_cycle
from .scheduler import IntervalScheduler, SchedulerError

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> RunnerConfig:
    p = argparse.ArgumentParser(description="Qingping cloud API → MQTT bridge")
    p.add_argument("--interval-seconds", type=float, default=None,
                   help="override BRIDGE_INTERVAL_SECONDS (default 60)")
    p.add_argument("--env-file", default=None, help="path of the .env file to load")
    p.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    p.add_argument("--once", action="store_true", help="run a single cycle and exit")
    args = p.parse_args(argv)

    return RunnerConfig(
        interval_seconds=args.interval_seconds,
        once=bool(args.once),
        env_file=args.env_file,
        log_level=str(args.log_level).upper(),
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    cfg = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    try:
        settings = get_settings(cfg.env_file)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        raise SystemExit(2) from e

    if cfg.interval_seconds is not None:
        settings = dataclasses.replace(settings, interval_seconds=cfg.interval_seconds)

    logger.info("Qingping bridge started")
    logger.info(
        "Config: oauth=%s api=%s mqtt=%s:%d namespace=%s interval=%.1fs",
        settings.oauth_url,
        settings.api_url,
        settings.mqtt_host,
        settings.mqtt_port,
        settings.topic_namespace,
        settings.interval_seconds,
    )

    if cfg.once:
        stats = run_cycle(settings)
        if not stats.ok:
            raise SystemExit(1)
        return

    try:
        scheduler = IntervalScheduler(
            lambda stop_event: run_cycle(settings, stop_event=stop_event),
            interval_seconds=settings.interval_seconds,
        )
    except SchedulerError as e:
        logger.error("add func error: %s", e)
        raise

    signal.signal(signal.SIGTERM, lambda signum, frame: scheduler.stop_event.set())
    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping...")
    finally:
        scheduler.stop(timeout=settings.http_timeout_seconds + settings.mqtt_timeout_seconds)


if __name__ == "__main__":
    main()
