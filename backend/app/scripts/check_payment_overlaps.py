"""CLI utility reporting active payments whose coverage overlaps for the same client."""

from __future__ import annotations

import argparse
import logging
from collections import Counter
from typing import Optional

from ..database import session_scope
from ..services import PaymentService

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Scan non-deleted payments and report clients with overlapping coverage. "
            "Exits with status 1 when overlaps are found, suitable for cron jobs."
        )
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also log every overlapping pair after the per-client summary.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    with session_scope() as db:
        findings = PaymentService.overlapping_payments(db)

    if not findings:
        LOGGER.info("No overlapping payments found")
        return 0

    pairs_per_client = Counter(finding.client_id for finding in findings)
    LOGGER.warning(
        "Found %s overlapping payment pairs across %s clients",
        len(findings),
        len(pairs_per_client),
    )
    for client_id, pairs in sorted(pairs_per_client.items()):
        LOGGER.warning("Client %s: %s overlapping payment pairs", client_id, pairs)
    for finding in findings:
        LOGGER.debug(
            "Client %s: payment %s [%s, %s) overlaps payment %s [%s, %s)",
            finding.client_id,
            finding.first.payment_id,
            finding.first.starts_on,
            finding.first.ends_on,
            finding.second.payment_id,
            finding.second.starts_on,
            finding.second.ends_on,
        )
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
