#!/usr/bin/env python3
"""
Session Cleanup Worker Runner

Starts the periodic sweep that deletes expired sessions from MongoDB.
Use it when the API processes run with SESSION_CLEANUP_INTERVAL_SECONDS=0.
"""

import asyncio
import sys

from config import AppSettings
from shared.logging import get_logger, setup_logging
from workers.session_cleanup import session_cleanup_worker

log = get_logger(__name__)


def main():
    """Main function to start the session cleanup worker"""
    settings = AppSettings()
    setup_logging(settings.logging.log_level, settings.logging.log_format)
    log.info("worker_starting", worker="session_cleanup", env=settings.env)

    try:
        asyncio.run(session_cleanup_worker(settings))
    except KeyboardInterrupt:
        log.info("worker_stopped", reason="keyboard_interrupt")
    except Exception as e:
        log.error("worker_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
