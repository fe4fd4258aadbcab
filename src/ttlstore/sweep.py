#!/usr/bin/env python3
"""
Expired Entry Sweep

Removes expired entries from the configured store. Meant for cron or a
systemd timer; the cache itself only purges an entry when it is read.

Usage:
    ttlstore-sweep [sweep|clear] [CONFIG_PATH]

Without CONFIG_PATH, ./config/ttlstore.defaults.yml is used if present,
otherwise the built-in defaults with TTLSTORE_* environment overrides.
"""

import logging
import sys

from .config import load_config, load_default_config

logger = logging.getLogger(__name__)

COMMANDS = ("sweep", "clear")
DEFAULT_CONFIG = "config/ttlstore.defaults.yml"


def main(argv=None):
    """Entry point for the sweep command."""
    args = list(sys.argv[1:] if argv is None else argv)

    command = "sweep"
    if args and args[0] in COMMANDS:
        command = args.pop(0)

    try:
        if args:
            config = load_config(args[0])
        else:
            config = load_default_config(DEFAULT_CONFIG)
    except FileNotFoundError as e:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
        logger.error(str(e))
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    cache = config.build()
    try:
        if command == "clear":
            cache.clear()
            logger.info(f"Cleared all entries ({config.storage_kind})")
        else:
            removed = cache.clear_expires()
            logger.info(f"Sweep removed {len(removed)} entries: {removed}")
    finally:
        close = getattr(cache.storage, "close", None)
        if close:
            close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
