#!/usr/bin/env python3
"""Dev entrypoint for the automation scanner and workers.

Usage:
    # Scan, then process every queue once
    python scripts/run_workers.py --once

    # Process queues only, no scan
    python scripts/run_workers.py --once --no-scan

    # Scan only (cron-style trigger)
    python scripts/run_workers.py --scan

    # Continuous loop (Ctrl+C to stop)
    python scripts/run_workers.py --loop --interval 30

Environment variables:
    WORKER_BATCH_SIZE: Items per batch (default: 50)
    WORKER_MAX_RETRIES: Deliveries per queue item before giving up (default: 3)
    WORKER_POLL_INTERVAL_SECONDS: Seconds between cycles (default: 60)
    MESSAGING_API_URL: Messaging API base URL (unset: log-only delivery)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from eventlane.db.session import engine, init_db
from eventlane.services.scheduler import AutomationScheduler
from eventlane.workers import (
    configure_worker_logging,
    run_worker_loop,
    run_worker_once,
)


def main() -> int:
    """Main entrypoint for worker runner."""
    parser = argparse.ArgumentParser(
        description="Run EventLane automation scanner and workers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run workers once and exit",
    )
    mode.add_argument(
        "--loop",
        action="store_true",
        help="Run workers continuously in a loop",
    )
    mode.add_argument(
        "--scan",
        action="store_true",
        help="Run the scanner only and exit",
    )

    # Configuration
    parser.add_argument(
        "--no-scan",
        action="store_true",
        help="Skip the scanner before processing queues",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between cycles (loop mode only)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Maximum iterations before stopping (loop mode only)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Items to process per batch",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Maximum deliveries per queue item",
    )

    # Logging
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Reduce logging to warnings only",
    )

    args = parser.parse_args()

    if args.verbose:
        configure_worker_logging(logging.DEBUG)
    elif args.quiet:
        configure_worker_logging(logging.WARNING)
    else:
        configure_worker_logging(logging.INFO)

    logger = logging.getLogger(__name__)

    try:
        init_db()

        if args.scan:
            logger.info("Running scanner...")
            with Session(engine) as session:
                report = AutomationScheduler(session).scan()

            print("\n--- Scan Summary ---")
            for scan_result in report.results:
                print(
                    f"{scan_result.notification_type.value}: {scan_result.status.value}, "
                    f"{scan_result.candidates} candidates, {scan_result.enqueued} enqueued"
                )
                if scan_result.error:
                    print(f"  error: {scan_result.error}")

            return 0 if not report.failed else 1

        elif args.once:
            logger.info("Running workers once...")
            result = run_worker_once(
                batch_size=args.batch_size,
                max_retries=args.max_retries,
                scan=not args.no_scan,
            )

            print("\n--- Worker Run Summary ---")
            if result.scan is not None:
                print(f"Scan enqueued: {result.scan.total_enqueued}")
            print(f"Workers run: {result.workers_run}")
            print(f"Total processed: {result.total_processed}")
            print(f"Total failed: {result.total_failed}")

            if result.errors:
                print(f"Errors: {len(result.errors)}")
                for err in result.errors:
                    print(f"  - {err}")

            for name, worker_result in result.worker_results.items():
                print(f"\n{name}:")
                print(f"  Processed: {worker_result.processed_count}")
                print(f"  Failed: {worker_result.failed_count}")
                outcomes = worker_result.metadata.get("outcomes") or {}
                for outcome, count in sorted(outcomes.items()):
                    print(f"  {outcome}: {count}")

            return 0 if not result.errors else 1

        elif args.loop:
            logger.info("Starting worker loop (Ctrl+C to stop)...")
            run_worker_loop(
                interval_seconds=args.interval,
                max_iterations=args.max_iterations,
                batch_size=args.batch_size,
                max_retries=args.max_retries,
                scan=not args.no_scan,
            )
            return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
