#!/usr/bin/env python3
"""
Event-Driven Message Router Service
Consumes stored inbound message ids from Redis Streams and runs the lead pipeline on each.

USAGE OPTIONS:

Option 1: Using Doppler (Recommended)
    doppler run -- python -m integration_hub.workers.route_messages_from_queue

Option 2: Manual Environment Variables
    export INTEGRATION_HUB_DATABASE_URL="your_db_connection_string"
    export REDIS_HOST="redis"
    export DATABASE_ENV="dev"  # or "prd"
    python -m integration_hub.workers.route_messages_from_queue

Each entry is routed in its own database session. Entries are acknowledged only
after the pipeline returned. An entry whose processing raised (e.g. the database
was unreachable) stays pending and is reclaimed by the next consumer that finds
it idle, including this one. Entries without a usable message id are logged and
acknowledged, since no retry can fix them; the stored message itself can still
be routed with reprocess_pending_messages.
"""
import os
import signal
import sys
from datetime import datetime
from typing import Dict

from integration_hub import env_var_injection
from integration_hub.db.db_interface import get_db_session
from integration_hub.hub.lead_pipeline import LeadPipeline
from integration_hub.message_queue.redis_streams_queue import RedisStreamsQueue
from integration_hub.paths import logs_root
from integration_hub.utils.log import get_logger, setup_logger

logger = get_logger(__name__)


class QueueMessageRouter:
    """Event-driven routing service using Redis Streams."""

    def __init__(self, environment: str, queue: RedisStreamsQueue = None, session_factory=get_db_session):
        self.environment = environment
        self.queue = queue or RedisStreamsQueue()
        self.session_factory = session_factory

        self.group_name = f"router_group_{environment}"
        self.consumer_name = f"router_{environment}_{os.getpid()}"

        logger.info(f"🤖 Initialized QueueMessageRouter for environment '{environment}'")
        logger.info(f"👥 Consumer group: '{self.group_name}', Consumer: '{self.consumer_name}'")

    def _signal_handler(self, signum, frame):
        logger.info(f"🛑 Received signal {signum}, shutting down gracefully...")
        self.queue.stop()

    def process_entry(self, entry: Dict[str, str]) -> None:
        """Route a single queued message. Errors other than a malformed entry propagate and leave it pending."""
        start_time = datetime.now()
        try:
            message_id = int(entry["message_id"])
        except (KeyError, TypeError, ValueError):
            logger.error(f"❌ Dropping malformed queue entry {entry!r}: no usable message_id")
            return

        with self.session_factory() as session:
            result = LeadPipeline(session).route_message(message_id)

        duration = (datetime.now() - start_time).total_seconds()
        if result.success:
            outcome = result.reason.value if result.reason else "skipped"
            logger.info(f"✅ Routed message {message_id} in {duration:.2f}s: {outcome}"
                        f"{f', lead {result.lead_id}' if result.lead_id else ''}")
        else:
            logger.error(f"❌ Routing message {message_id} failed in {duration:.2f}s: {result.error}")

    def run(self):
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.queue.create_consumer_group(self.group_name)
        logger.info(f"🎧 Starting streams router for environment '{self.environment}'")
        self.queue.consume_messages(
            group_name=self.group_name,
            consumer_name=self.consumer_name,
            processor_func=self.process_entry,
        )


def main():
    setup_logger(logs_root)
    environment = env_var_injection.database_env

    logger.info(f"🤖 Starting Queue Router Service for environment '{environment}'")
    service = QueueMessageRouter(environment)

    try:
        service.run()
    except Exception as e:
        logger.error(f"❌ Queue Router Service error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
