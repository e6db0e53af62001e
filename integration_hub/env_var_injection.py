import os
from typing import Optional


def sanitize_env_var(name: str, default: Optional[str] = None) -> str:
	value = os.getenv(name)
	if value is None:
		if default is None:
			raise RuntimeError(f"Missing required environment variable: {name}")
		return default
	value = value.replace('"', "")
	return value


def database_url() -> str:
	# Read on demand so importing the package never needs a live database
	return sanitize_env_var("INTEGRATION_HUB_DATABASE_URL")


base_url = sanitize_env_var("INTEGRATION_HUB_BASE_URL", "http://localhost:8000").rstrip("/")
webhook_verify_token = sanitize_env_var("WEBHOOK_VERIFY_TOKEN", "")
redis_host = sanitize_env_var("REDIS_HOST", "redis")
redis_port = int(sanitize_env_var("REDIS_PORT", "6379"))
database_env = sanitize_env_var("DATABASE_ENV", "dev")
