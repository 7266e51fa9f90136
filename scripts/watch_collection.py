"""Print a live mirror of a backend collection (or one record) to stdout.

Usage:
    python scripts/watch_collection.py <collection> [record_id] [--filter EXPR]
Optionally logs in first when KONTEXT_EMAIL and KONTEXT_PASSWORD are set.
Stops on Ctrl+C or when the subscription fails.
"""

import argparse
import asyncio
import json
import os
import sys

from kontext.application.services.subscriptions import SubscriptionState
from kontext.client import KontextClient
from kontext.core.config import get_settings
from kontext.shared.telemetry.logging import setup_logging


def _print_change(mirror, event) -> None:
    if event is None:
        print(f"snapshot: {json.dumps(mirror.snapshot(), default=str)}")
    else:
        print(f"{event.action.value}: {json.dumps(event.record.to_payload(), default=str)}")


async def main() -> None:
    """Watch the requested key until interrupted."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("collection")
    parser.add_argument("record_id", nargs="?")
    parser.add_argument("--filter", default=None)
    args = parser.parse_args()

    setup_logging()
    async with KontextClient(get_settings()) as kontext:
        email, password = os.environ.get("KONTEXT_EMAIL"), os.environ.get("KONTEXT_PASSWORD")
        if email and password:
            result = await kontext.session.login(email, password)
            if not result.success:
                print(f"Login failed: {result.error}", file=sys.stderr)
                sys.exit(1)

        stopped = asyncio.Event()
        async with kontext.subscriptions.watch(args.collection, args.record_id, args.filter) as sub:
            if sub.state is SubscriptionState.FAILED:
                print(f"Subscription failed: {sub.error}", file=sys.stderr)
                sys.exit(1)
            _print_change(sub.mirror, None)
            sub.mirror.observe(_print_change)
            sub.observe_state(lambda s, state: stopped.set() if state is SubscriptionState.FAILED else None)
            await stopped.wait()
            print(f"Subscription failed: {sub.error}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
