#!/usr/bin/env python3
"""
Generate Webhook URL

Prints the webhook URL to register in a channel's developer console. Every run
issues a new secret and stores it on the integration, so a previously printed
URL stops matching the stored secret.

Usage:
    doppler run -- python -m integration_hub.scripts.generate_webhook_url --integration-id <id> --channel telegram
"""

import argparse
import sys

from integration_hub.channels.channel import SUPPORTED_CHANNELS
from integration_hub.db.db_interface import get_db_session
from integration_hub.hub.integration_hub import IntegrationHub
from integration_hub.paths import logs_root
from integration_hub.utils.log import get_logger, setup_logger

logger = get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Generate a webhook URL for an integration")
    parser.add_argument("--integration-id", required=True)
    parser.add_argument("--channel", required=True, choices=SUPPORTED_CHANNELS)
    args = parser.parse_args()

    setup_logger(logs_root, create_console_log=False)

    try:
        with get_db_session() as session:
            url = IntegrationHub(session).generate_webhook_url(args.integration_id, args.channel)
    except Exception as e:
        logger.error(f"❌ Failed to generate webhook URL: {e}")
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)

    print(url)


if __name__ == "__main__":
    main()
