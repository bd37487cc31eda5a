"""
Headless command line runner for Readme Sync.

    readme-sync watch ITEM [ITEM ...]   Wait for each item's readme and record it
    readme-sync validate                Check recorded readmes against disk
    readme-sync show ITEM               Print the readme recorded for ITEM

``watch`` runs in the foreground until every lookup has finished or
SIGINT/SIGTERM arrives.
"""

import argparse
import concurrent.futures
import logging
import signal
import sys
import threading
from pathlib import Path

from readme_sync import __app_name__
from readme_sync.agent import SyncAgent, setup_logging
from readme_sync.config import Config
from readme_sync.errors import IoError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readme-sync",
        description=f"{__app_name__}: keep recorded readmes in step with disk.",
    )
    parser.add_argument("--config", type=Path, help="Path to an alternate config.json")
    parser.add_argument("--install-root", help="Override the configured install root")
    sub = parser.add_subparsers(dest="command", required=True)

    watch = sub.add_parser("watch", help="Wait for readmes and record them")
    watch.add_argument("items", nargs="+", metavar="ITEM")

    sub.add_parser("validate", help="Check recorded readmes against disk")

    show = sub.add_parser("show", help="Print the readme recorded for an item")
    show.add_argument("item", metavar="ITEM")
    return parser


def _run_foreground(agent: SyncAgent, items: list[str]) -> int:
    """Run lookups for *items* until they finish or a signal arrives."""
    stop = threading.Event()

    def _handler(sig, frame):
        stop.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    futures = []
    unregistered = []
    for item_id in items:
        if not agent.store.has_item(item_id):
            try:
                agent.store.set_state(item_id, "installed")
            except IoError as exc:
                print(f"Cannot register {item_id}: {exc}", file=sys.stderr)
                unregistered.append(item_id)
                continue
        future = agent.on_install_started(item_id)
        if future is not None:
            futures.append(future)

    print(f"{__app_name__} watching {len(futures)} item(s) (press Ctrl-C to stop)…")
    pending = set(futures)
    while pending and not stop.is_set():
        _, pending = concurrent.futures.wait(pending, timeout=1)

    if pending:
        agent.shutdown()
        concurrent.futures.wait(pending, timeout=5)

    failed = [f for f in futures if f.done() and f.exception() is not None]
    print(f"{__app_name__} stopped.")
    return 1 if failed or unregistered else 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the command line runner.  Returns the exit status."""
    args = _build_parser().parse_args(argv)

    config = Config(args.config)
    if args.install_root:
        config.install_root = args.install_root
    setup_logging(config)

    if args.command == "watch":
        agent = SyncAgent(config)
        return _run_foreground(agent, args.items)

    # Read-only commands should not trigger revalidation on load
    config.validate_on_change = False
    agent = SyncAgent(config)

    if args.command == "validate":
        result = agent.run_check()
        if result.ok:
            print("All readmes match their recorded values.")
            return 0
        print(f"Validation failed: {result.message}", file=sys.stderr)
        return 1

    print(agent.attribute_value(args.item))
    return 0


if __name__ == "__main__":
    sys.exit(main())
