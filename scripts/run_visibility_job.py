#!/usr/bin/env python3
"""
Visibility Job Runner

Runs the batch jobs over the citation corpus:
1. scores       Recompute Visibility Scores (+ history)
2. competitors  Refresh competitor metrics (one target or all cited domains)
3. urls         Refresh URL performance metrics
4. all          scores, then competitors, then urls

Usage:
    # Database from DATABASE_URL (or .env), SQLite fallback otherwise
    python scripts/run_visibility_job.py init-db
    python scripts/run_visibility_job.py scores
    python scripts/run_visibility_job.py competitors --domain acme.com
    python scripts/run_visibility_job.py all
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from searchable.utils.config import get_settings

load_dotenv()

# Configure logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def run_job(command: str, domain: str = None, database_url: str = None) -> dict:
    """Run one job inside a single transaction and return its summary."""
    from searchable.database import (
        create_db_engine,
        create_session_factory,
        init_db,
        session_scope,
        run_visibility_score_calculation,
        refresh_competitor_metrics,
        refresh_url_performance_metrics,
    )

    engine = create_db_engine(database_url)
    if command == "init-db":
        init_db(engine)
        return {"initialized": True}

    SessionLocal = create_session_factory(engine)
    summary = {}

    if command in ("scores", "all"):
        with session_scope(SessionLocal) as db:
            summary["scores"] = run_visibility_score_calculation(db).to_dict()

    if command in ("competitors", "all"):
        with session_scope(SessionLocal) as db:
            summary["competitors"] = refresh_competitor_metrics(db, target_domain=domain)

    if command in ("urls", "all"):
        with session_scope(SessionLocal) as db:
            summary["urls"] = {"written": refresh_url_performance_metrics(db)}

    return summary


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run visibility batch jobs over the citation corpus"
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: DATABASE_URL / POSTGRES_URL / SQLite fallback)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create tables")
    subparsers.add_parser("scores", help="Recompute visibility scores")
    competitors = subparsers.add_parser("competitors", help="Refresh competitor metrics")
    competitors.add_argument(
        "--domain",
        default=None,
        help="Target domain (default: every cited domain)"
    )
    subparsers.add_parser("urls", help="Refresh URL performance metrics")
    subparsers.add_parser("all", help="Run scores, competitors and urls")

    args = parser.parse_args()

    try:
        summary = run_job(
            args.command,
            domain=getattr(args, "domain", None),
            database_url=args.database_url,
        )
    except Exception as e:
        logger.error(f"Job '{args.command}' failed: {e}")
        sys.exit(1)

    print(json.dumps(summary, indent=2, default=str))


if __name__ == "__main__":
    main()
