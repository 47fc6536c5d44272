#!/usr/bin/env python3
"""Run concurrent transfers against one source account and report the outcome.

Examples::

    python scripts/run_contention.py --amount 9.00 --amount 51.00 --amount 51.00
    python scripts/run_contention.py --transfers 50 --initial-balance 500.00 --backend postgres
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from instant_payments.bootstrap import build_notifier, build_storage
from instant_payments.config import PaymentsConfig
from instant_payments.exceptions import PaymentError
from instant_payments.logging import setup_logging
from instant_payments.models import parse_amount
from instant_payments.scenarios import ContentionScenario
from instant_payments.serialization import to_dict

logger = logging.getLogger("run_contention")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--backend",
        choices=["memory", "postgres"],
        default=None,
        help="Storage backend (default: STORAGE_BACKEND or memory)",
    )
    parser.add_argument(
        "--notifier",
        choices=["kafka", "console", "none"],
        default="console",
        help="Where to publish notifications (default: console)",
    )
    parser.add_argument("--initial-balance", default="100.00", help="Source starting balance")
    parser.add_argument("--destination-balance", default="0.00", help="Destination starting balance")
    parser.add_argument(
        "--amount",
        action="append",
        dest="amounts",
        help="Transfer amount; repeat for several transfers",
    )
    parser.add_argument("--transfers", type=int, default=10, help="Generated transfers if no --amount")
    parser.add_argument("--max-amount", default="50.00", help="Upper bound for generated amounts")
    parser.add_argument("--workers", type=int, default=8, help="Thread pool size")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point."""
    args = parse_args(argv)

    try:
        config = PaymentsConfig.from_env()
        if args.backend:
            config.storage_backend = args.backend
        config.notification.notifier = args.notifier
        if args.log_level:
            config.log_level = args.log_level
        config.validate()
        setup_logging(config.log_level, config.log_format)

        amounts = [parse_amount(a) for a in args.amounts] if args.amounts else None
        initial_balance = parse_amount(args.initial_balance)
        destination_balance = parse_amount(args.destination_balance)
        max_amount = parse_amount(args.max_amount)
        storage = build_storage(config)
        notifier = build_notifier(config)
    except PaymentError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    scenario = ContentionScenario(
        initial_balance=initial_balance,
        destination_balance=destination_balance,
        amounts=amounts,
        num_transfers=args.transfers,
        max_amount=max_amount,
        max_workers=args.workers,
        storage=storage,
        notifier=notifier,
        seed=args.seed,
    )
    try:
        report = scenario.run()
    finally:
        scenario.dispatcher.close()
        storage.close()

    logger.info("Report: %s", report.to_dict())
    print(json.dumps(to_dict(report.to_dict()), indent=2))
    return 0 if report.conserved else 1


if __name__ == "__main__":
    sys.exit(main())
