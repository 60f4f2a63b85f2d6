"""Entry point: python -m gemclaw"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from gemclaw.infrastructure.logger import logger


async def main() -> None:
    from gemclaw.app import Orchestrator

    orchestrator = Orchestrator()

    # Handle graceful shutdown
    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        logger.info("Received shutdown signal")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await orchestrator.start()

        # Wait for shutdown signal
        await shutdown_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await orchestrator.shutdown()


def run_maintenance(action: str) -> int:
    """Toggle or report maintenance mode without starting the service."""
    from gemclaw.infrastructure.database import AppDatabase
    from gemclaw.infrastructure.maintenance import MaintenanceMode

    db = AppDatabase()
    db.init()
    try:
        mode = MaintenanceMode(db.state_repo)
        if action == "on":
            mode.enable()
        elif action == "off":
            mode.disable()
        print(f"Maintenance mode: {'on' if mode.is_active() else 'off'}")
    finally:
        db.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gemclaw", description="Scheduled task execution engine")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Run the scheduler service (default)")
    maint = sub.add_parser("maintenance", help="Pause or resume task dispatch")
    maint.add_argument("action", choices=["on", "off", "status"])
    return parser


def run(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.command == "maintenance":
        sys.exit(run_maintenance(args.action))

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
