#!/usr/bin/env python3
"""Entry point for the Block Announcer service.

This module provides the main entry point for the service that polls a
block data API for newly mined blocks and announces them, either to a
messaging network or, in local mode, to the log.
"""

import argparse
import asyncio
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from block_announcer.announcer import BlockAnnouncer
from block_announcer.config import BotConfig
from block_announcer.exceptions import BlockSourceError


async def main() -> None:
    """Main entry point for the Block Announcer service.

    Parses startup arguments, loads configuration from environment,
    seeds the last seen block and polls until interrupted.

    Raises:
        SystemExit: On configuration or startup errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Block Announcer - Publish newly mined Bitcoin blocks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  API_URL              - Block data API (default: https://mempool.space/api)
  EXPLORER_URL         - Explorer used for block links (default: https://mempool.space)
  START_BLOCK_HASH     - Last already-announced block (default: current tip)
  POLLING_INTERVAL     - Polling interval in seconds (default: 30)
  ERROR_COOLDOWN       - Seconds between failure notices (default: 3600)
  REQUEST_TIMEOUT      - HTTP request timeout in seconds (default: 30)
  MAX_BACKTRACK_DEPTH  - Blocks walked back per poll before giving up (default: 1000)
  LOG_LEVEL            - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "start_block_hash",
        nargs="?",
        default=None,
        help="Hash of the last already-announced block (overrides START_BLOCK_HASH)"
    )
    parser.add_argument(
        "--local",
        action="store_true",
        default=False,
        help="Run in local mode, logging messages instead of publishing them"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    if mode_msg := ("(LOCAL MODE)" if args.local else ""):
        logger.info(f"=== Block Announcer Starting {mode_msg} ===")
        logger.info("Local mode enabled: messages are logged, not published")
    else:
        logger.info("=== Block Announcer Starting ===")

    logger.info("Loading configuration from environment...")

    try:
        config: BotConfig = BotConfig.from_env(
            start_block_hash=args.start_block_hash,
            local_mode=args.local
        )
        config.log_config()

        announcer: BlockAnnouncer = BlockAnnouncer(config)
        await announcer.start()
        await announcer.run()

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - API_URL: Block data API base URL")
        logger.error("  - POLLING_INTERVAL: Polling interval (default: 30)")
        logger.error("  - ERROR_COOLDOWN: Seconds between failure notices (default: 3600)")
        logger.error("  - REQUEST_TIMEOUT: HTTP request timeout (default: 30)")
        logger.error("  - MAX_BACKTRACK_DEPTH: Backtrack bound (default: 1000)")
        if not args.local:
            logger.error("  - No messaging client is bundled; use --local to log messages")
        sys.exit(1)

    except BlockSourceError as e:
        logger.error(f"Startup Error: could not determine the current tip: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down gracefully...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
