#!/usr/bin/env python3
"""
Webhook Server
Unified HTTP endpoint for deliveries from every channel.

Start with:
    doppler run -- uvicorn integration_hub.webhook_server:app --host 0.0.0.0 --port 8000

POST stores the delivery as a pending message and hands its id to the routing
worker through Redis Streams. GET answers the subscription handshake some
platforms perform when the webhook URL is registered.
"""

from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from integration_hub import env_var_injection
from integration_hub.channels.channel import Channel, SUPPORTED_CHANNELS
from integration_hub.db.db_interface import get_session_local
from integration_hub.hub.integration_hub import IntegrationHub
from integration_hub.message_queue.redis_streams_queue import RedisStreamsQueue
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)

# Channels whose platforms verify the callback URL with a hub.challenge handshake
HANDSHAKE_CHANNELS = (Channel.INSTAGRAM.value, Channel.WHATSAPP.value)

app = FastAPI(
    title="Integration Hub",
    description="Inbound messaging webhooks for the franchise CRM",
    version="0.1.0"
)

_queue: Optional[RedisStreamsQueue] = None


def get_db():
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


def get_queue() -> RedisStreamsQueue:
    global _queue
    if _queue is None:
        _queue = RedisStreamsQueue()
    return _queue


@app.post("/api/webhooks/{channel}/{integration_id}")
def receive_webhook(channel: str, integration_id: str,
                    payload: Any = Body(None),
                    db=Depends(get_db),
                    queue: RedisStreamsQueue = Depends(get_queue)):
    logger.info(f"🌐 Webhook received for {channel}/{integration_id}")

    if channel not in SUPPORTED_CHANNELS:
        return JSONResponse({"error": "Unsupported channel"}, status_code=400)

    result = IntegrationHub(db).process_incoming_message(channel, payload, integration_id)
    if not result.success:
        return JSONResponse({"error": result.error}, status_code=500)

    try:
        queue.publish_message_id(result.message_id, integration_id=integration_id, channel=channel)
    except Exception as e:
        # the message is stored as pending and reprocess_pending_messages picks it up
        logger.warning(f"⚠️ Message {result.message_id} stored but not queued for routing: {e}")

    return {"success": True, "message_id": result.message_id}


@app.get("/api/webhooks/{channel}/{integration_id}")
def verify_webhook(channel: str, integration_id: str,
                   mode: Optional[str] = Query(None, alias="hub.mode"),
                   verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
                   challenge: Optional[str] = Query(None, alias="hub.challenge")):
    if channel in HANDSHAKE_CHANNELS:
        expected = env_var_injection.webhook_verify_token
        if mode == "subscribe" and expected and verify_token == expected:
            logger.info(f"🤝 Verified {channel} webhook for integration {integration_id}")
            return PlainTextResponse(challenge or "")
        logger.warning(f"🚫 {channel} webhook verification failed for integration {integration_id}")
        return JSONResponse({"error": "Verification failed"}, status_code=403)

    return {"ok": True}


@app.get("/")
def root() -> Dict[str, Any]:
    return {"name": "Integration Hub", "status": "running", "channels": list(SUPPORTED_CHANNELS)}
