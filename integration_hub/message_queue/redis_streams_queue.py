import redis
import time
from typing import Callable, Dict, Optional
from datetime import datetime, timezone

from integration_hub import env_var_injection
from integration_hub.consts import INBOUND_STREAM_NAME
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)


class RedisStreamsQueue:
    """Queue of stored inbound message ids on a Redis stream, consumed through consumer groups."""

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 stream_name: str = INBOUND_STREAM_NAME, redis_client=None):
        host = host or env_var_injection.redis_host
        port = port or env_var_injection.redis_port
        self.redis_client = redis_client or redis.Redis(host=host, port=port, decode_responses=True)
        self.stream_name = stream_name
        self.running = True
        logger.info(f"🔌 Initialized Redis Streams queue '{stream_name}' on {host}:{port}")

    def publish_message_id(self, message_id: int, integration_id: Optional[str] = None,
                           channel: Optional[str] = None) -> str:
        """Publish a stored message id for routing."""
        entry = {
            "message_id": str(message_id),
            "published_at": datetime.now(timezone.utc).isoformat(),
        }
        if integration_id:
            entry["integration_id"] = integration_id
        if channel:
            entry["channel"] = channel

        try:
            entry_id = self.redis_client.xadd(self.stream_name, entry)
        except Exception as e:
            logger.error(f"❌ Failed to publish message {message_id}: {e}")
            raise

        logger.info(f"📤 Published message {message_id} to stream '{self.stream_name}' with ID {entry_id}")
        return entry_id

    def create_consumer_group(self, group_name: str) -> None:
        """Create consumer group for reliable message processing."""
        try:
            # Start from the beginning so ids published before the first consumer are not lost
            self.redis_client.xgroup_create(self.stream_name, group_name, id='0', mkstream=True)
            logger.info(f"👥 Created consumer group '{group_name}' for stream '{self.stream_name}'")
        except redis.exceptions.ResponseError as e:
            if "BUSYGROUP" in str(e):
                logger.info(f"👥 Consumer group '{group_name}' already exists")
            else:
                raise

    def consume_once(self, group_name: str, consumer_name: str,
                     processor_func: Callable[[Dict[str, str]], None],
                     block_ms: int = 1000, count: int = 1) -> int:
        """Read one batch of new entries and process it. Returns the number of acknowledged entries.

        Entries whose processing raises stay in the group's pending list until
        reclaim_pending picks them up again.
        """
        messages = self.redis_client.xreadgroup(
            group_name,
            consumer_name,
            {self.stream_name: '>'},  # '>' means new messages only
            block=block_ms,
            count=count
        )

        entries = [entry for _stream, stream_messages in messages or [] for entry in stream_messages]
        return self._process_entries(group_name, consumer_name, entries, processor_func)

    def reclaim_pending(self, group_name: str, consumer_name: str,
                        processor_func: Callable[[Dict[str, str]], None],
                        min_idle_ms: int = 60000, count: int = 10) -> int:
        """Take over entries read but not acknowledged for at least min_idle_ms and process them again.

        Covers entries whose processing raised and entries left behind by a consumer that died.
        Returns the number of acknowledged entries.
        """
        response = self.redis_client.xautoclaim(
            self.stream_name, group_name, consumer_name, min_idle_ms, start_id='0-0', count=count
        )
        # deleted stream entries come back without an id
        entries = [(entry_id, entry) for entry_id, entry in response[1] if entry_id is not None]
        if entries:
            logger.info(f"♻️ Consumer '{consumer_name}' reclaimed {len(entries)} pending entries")
        return self._process_entries(group_name, consumer_name, entries, processor_func)

    def _process_entries(self, group_name: str, consumer_name: str, entries,
                         processor_func: Callable[[Dict[str, str]], None]) -> int:
        acked = 0
        for entry_id, entry in entries:
            try:
                logger.info(f"📨 Consumer '{consumer_name}' received entry {entry_id} "
                            f"(message {(entry or {}).get('message_id', 'unknown')})")
                processor_func(entry or {})
                self.redis_client.xack(self.stream_name, group_name, entry_id)
                acked += 1
                logger.info(f"✅ Consumer '{consumer_name}' acknowledged entry {entry_id}")
            except Exception as e:
                logger.error(f"❌ Consumer '{consumer_name}' failed to process entry {entry_id}: {e}")
        return acked

    def consume_messages(self, group_name: str, consumer_name: str,
                         processor_func: Callable[[Dict[str, str]], None],
                         block_ms: int = 1000, reclaim_interval_s: float = 30.0,
                         reclaim_idle_ms: int = 60000) -> None:
        """Consume until stop() is called, retrying stale pending entries every reclaim_interval_s."""
        logger.info(f"🎧 Consumer '{consumer_name}' in group '{group_name}' listening on '{self.stream_name}'")
        last_reclaim = None
        try:
            while self.running:
                now = time.monotonic()
                if last_reclaim is None or now - last_reclaim >= reclaim_interval_s:
                    self.reclaim_pending(group_name, consumer_name, processor_func, min_idle_ms=reclaim_idle_ms)
                    last_reclaim = now
                self.consume_once(group_name, consumer_name, processor_func, block_ms=block_ms)
        except Exception as e:
            logger.error(f"❌ Consumer '{consumer_name}' error: {e}")
            raise

    def stop(self) -> None:
        self.running = False
