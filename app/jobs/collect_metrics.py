"""
One-shot metrics collection.

Runs a single repository poll cycle against the configured database without
starting the API server, prints a summary, and exits non-zero when the
cycle could not run at all. Individual repository failures are reported but
do not change the exit code.

Usage:
    python -m app.jobs.collect_metrics [--no-prune]
"""

import asyncio
import sys
from typing import Any, Dict

from app.config.database import Database
from app.config.settings import settings
from app.crawlers.github.client import GitHubClient
from app.orchestrator_poll import RepositoryPoller
from app.utils.logger import setup_logging


async def collect(prune: bool = True) -> Dict[str, Any]:
    database = Database(settings.DATABASE_URL).open()
    try:
        async with GitHubClient(settings.GITHUB_TOKEN) as client:
            poller = RepositoryPoller(
                session_factory=database.session,
                github_client=client,
                retention_days=settings.METRICS_RETENTION_DAYS if prune else 0,
            )
            return await poller.poll_now()
    finally:
        database.close()


def print_summary(stats: Dict[str, Any]) -> None:
    print(f"\n{'='*70}")
    print("METRICS COLLECTION")
    print(f"Started:   {stats.get('started_at')}")
    print(f"Completed: {stats.get('completed_at')}")
    print(f"{'='*70}\n")
    print(f"Repositories: {stats.get('repositories', 0)}")
    print(f"  updated: {stats.get('updated', 0)}")
    print(f"  skipped: {stats.get('skipped', 0)}")
    print(f"  empty:   {stats.get('empty', 0)}")
    print(f"  failed:  {stats.get('failed', 0)}")
    print(f"Pruned metric rows: {stats.get('pruned', 0)}")

    for failure in stats.get("failures", []):
        print(f"  ! {failure['repository']}: {failure['error']}")
    if stats.get("error"):
        print(f"\nCycle aborted: {stats['error']}")


def main():
    """CLI entry point."""
    setup_logging(settings.LOG_LEVEL)
    prune = "--no-prune" not in sys.argv

    stats = asyncio.run(collect(prune=prune))
    print_summary(stats)
    print(f"\n{'='*70}\n")

    sys.exit(1 if stats.get("error") else 0)


if __name__ == "__main__":
    main()
