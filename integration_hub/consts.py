# Logging environment overrides (see integration_hub.utils.log.setup_logger)
ENABLE_DEBUG_LOG = "HUB_ENABLE_DEBUG_LOG"
ENABLE_LOCAL_LOG = "HUB_ENABLE_LOCAL_LOG"
ENABLE_REMOTE_LOG = "HUB_ENABLE_REMOTE_LOG"
LOCAL_LOG_MIN_SEVERITY = "HUB_LOCAL_LOG_SEVERITY"
REMOTE_LOG_MIN_SEVERITY = "HUB_REMOTE_LOG_SEVERITY"
LOGGING_FORMAT_ENV = "LOGGING_FORMAT_ENV"

LOCAL_LOGGING = "LOCAL"
REMOTE_LOGGING = "REMOTE"

# Redis stream carrying ids of stored inbound messages awaiting routing
INBOUND_STREAM_NAME = "inbound_messages"

WEBHOOK_SECRET_LENGTH = 32
