#!/usr/bin/env python3
"""
Reprocess Pending Messages

Runs the lead pipeline again for every inbound message still in status
"pending", oldest origin timestamp first. Useful after trigger rules changed,
or when messages were stored while the routing worker or Redis was down.

Usage:
    doppler run -- python -m integration_hub.scripts.reprocess_pending_messages
    doppler run -- python -m integration_hub.scripts.reprocess_pending_messages --integration-id <id> --limit 100
"""

import argparse
from collections import Counter
from typing import Dict, Optional

from integration_hub.db.db import get_pending_messages, get_processing_summary
from integration_hub.db.db_interface import get_db_session
from integration_hub.hub.lead_pipeline import LeadPipeline
from integration_hub.paths import logs_root
from integration_hub.utils.log import get_logger, setup_logger

logger = get_logger(__name__)


def reprocess_pending_messages(session, integration_id: Optional[str] = None,
                               limit: Optional[int] = None) -> Dict[str, int]:
    """Route every pending message; returns outcome counts."""
    message_ids = [row.id for row in get_pending_messages(session, integration_id=integration_id, limit=limit)]
    logger.info(f"🔄 Reprocessing {len(message_ids)} pending messages"
                f"{f' for integration {integration_id}' if integration_id else ''}")

    pipeline = LeadPipeline(session)
    outcomes = Counter()
    for message_id in message_ids:
        result = pipeline.route_message(message_id)
        if not result.success:
            outcomes["failed"] += 1
        elif result.lead_created:
            outcomes["leads_created"] += 1
        elif result.reason is not None:
            outcomes[result.reason.value] += 1
        else:
            outcomes["skipped"] += 1

    return dict(outcomes)


def main():
    parser = argparse.ArgumentParser(description="Re-run lead routing for pending inbound messages")
    parser.add_argument("--integration-id", help="Only messages of this integration")
    parser.add_argument("--limit", type=int, help="Maximum number of messages to reprocess")
    args = parser.parse_args()

    setup_logger(logs_root)
    logger.info("🚀 Starting pending message reprocessing")
    logger.info("=" * 50)

    with get_db_session() as session:
        outcomes = reprocess_pending_messages(session, integration_id=args.integration_id, limit=args.limit)

        logger.info("")
        logger.info("📊 REPROCESSING SUMMARY:")
        for outcome, count in sorted(outcomes.items()):
            logger.info(f"   {outcome}: {count}")

        logger.info("📋 Messages by status:")
        for status, count in get_processing_summary(session, integration_id=args.integration_id):
            logger.info(f"   {status}: {count}")


if __name__ == "__main__":
    main()
