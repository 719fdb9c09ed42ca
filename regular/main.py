"""regular entry point — run a command on a schedule.

Usage examples:
    # Run a backup every 5 minutes, all day
    regular --success-interval 300000 -- ./backup.sh

    # Poll a queue during office hours and overnight, retry failures after 10s
    regular --period 09:00-17:00 --period 22:00-06:00 --fail-interval 10000 -- ./drain.py

    # Everything from a YAML file
    regular --config schedule.yaml -- ./job.sh
"""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from regular.config import Settings
from regular.scheduler import CommandTask, Engine

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def parse_period(value: str) -> dict[str, str]:
    """Parse ``START-END`` (e.g. ``22:00-06:00``) into a period mapping."""
    start, sep, end = value.partition("-")
    if not sep or not start.strip() or not end.strip():
        msg = f"invalid period {value!r}, expected HH:MM-HH:MM"
        raise argparse.ArgumentTypeError(msg)
    return {"start": start.strip(), "end": end.strip()}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regular",
        description="Run a command repeatedly, optionally inside daily time windows.",
    )
    parser.add_argument("--config", help="YAML file with schedule settings")
    parser.add_argument("--name", help="Name used in log messages")
    parser.add_argument(
        "--period",
        dest="periods",
        action="append",
        type=parse_period,
        help="Daily window START-END, may be repeated (e.g. 22:00-06:00)",
    )
    parser.add_argument(
        "--success-interval",
        type=int,
        help="Milliseconds to wait after a success; negative runs once",
    )
    parser.add_argument(
        "--fail-interval",
        type=int,
        help="Milliseconds to wait before retrying a failure; negative gives up",
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run (after --)")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Build Settings from the YAML file (if any) with CLI flags on top."""
    overrides = {
        "name": args.name,
        "periods": args.periods,
        "success_interval": args.success_interval,
        "fail_interval": args.fail_interval,
        "log_level": args.log_level,
    }
    if args.config:
        return Settings.from_yaml(args.config, **overrides)
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


async def run(engine: Engine, task: CommandTask, drain_timeout: float = 10.0) -> int:
    """Run the engine until it stops, translating the outcome to an exit code."""
    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, engine.shutdown)

    try:
        await engine.start(task)
    except Exception:
        logger.exception("Scheduler stopped with an error")
        return EXIT_FAILED
    finally:
        for sig in signals:
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(sig)
        if not await engine.join(timeout=drain_timeout):
            logger.warning("Task still running after %.0fs, exiting anyway", drain_timeout)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, configure logging and run the scheduler."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.error("no command given")

    try:
        settings = load_settings(args)
        config = settings.to_config()
        config.parse_windows()
    except (OSError, ValueError) as exc:
        print(f"regular: {exc}", file=sys.stderr)
        return EXIT_USAGE

    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    engine = Engine(config, tick_seconds=settings.tick_seconds)
    task = CommandTask(command)
    logger.info("Starting %s: %s", config.name, task.command)
    return asyncio.run(run(engine, task))


if __name__ == "__main__":
    sys.exit(main())
