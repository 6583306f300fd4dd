#!/usr/bin/env python3
"""
Time Role Keeper — The bot process.

Loads the role configuration, connects to Discord, and serves the local
status API on the same event loop. Each guild the bot can see gets its own
reconciler ticking every TIMEBOT_TICK_INTERVAL seconds.

Usage:
    timebot                         # Run the bot (and status API)
    timebot --no-api                # Bot only
    timebot check-config            # Validate conf/conf.json and exit
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from timebot import __version__
from timebot.config.configuration import load_configuration
from timebot.config.settings import Settings
from timebot.errors import ConfigLoadError

logger = logging.getLogger("timebot")

LOG_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S %d.%m.%Y"


class OwnLoggersFilter(logging.Filter):
    """Pass timebot.* records at any level, everything else from WARNING up."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.WARNING or record.name.startswith("timebot")


def configure_logging(settings: Settings):
    """stdout handler plus an optional file handler, both filtered."""
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATEFMT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file))

    root = logging.getLogger()
    root.setLevel(settings.log_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(OwnLoggersFilter())
        root.addHandler(handler)


async def run(settings: Settings) -> int:
    """Run the bot until it disconnects or the process is interrupted."""
    import uvicorn

    from timebot.api.app import create_app
    from timebot.bot.client import TimeBot
    from timebot.services.config_store import ConfigPersister, ConfigStore

    configuration = load_configuration(settings.config_path)

    token = settings.load_token()
    if not token:
        logger.error("No Discord token configured (TIMEBOT_TOKEN or %s)", settings.token_path)
        return 1

    store = ConfigStore(configuration)
    persist = ConfigPersister(settings.config_path)
    bot = TimeBot(store, settings, persist=persist)

    stop = asyncio.Event()
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, stop.set)
    except (NotImplementedError, RuntimeError):
        pass  # no loop signal handlers on Windows

    runners = [
        asyncio.create_task(bot.start(token), name="discord"),
        asyncio.create_task(stop.wait(), name="sigterm"),
    ]

    server = None
    if settings.api_enabled:
        app = create_app(
            store,
            bot.supervisor,
            persist=persist,
            is_connected=lambda: bot.is_ready() and not bot.is_closed(),
        )
        server = uvicorn.Server(
            uvicorn.Config(app, host=settings.api_host, port=settings.api_port, log_level="warning")
        )
        runners.append(asyncio.create_task(server.serve(), name="status-api"))
        logger.info("Status API on http://%s:%d", settings.api_host, settings.api_port)

    logger.info("Starting the bot! (v%s, %d members tracked)", __version__, len(configuration.member_timezones))
    try:
        done, _ = await asyncio.wait(runners, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None:
                logger.error("Error while running %s: %s", task.get_name(), error)
                return 1
    finally:
        logger.info("Shutting down gracefully...")
        if server is not None:
            server.should_exit = True
        await bot.close()
        await asyncio.gather(*runners, return_exceptions=True)

    return 0


def check_config(settings: Settings) -> int:
    """Load and summarize the configuration file."""
    try:
        conf = load_configuration(settings.config_path)
    except ConfigLoadError as e:
        print(f"  ✗ {e}")
        return 1

    print(f"  ✓ {settings.config_path}")
    print(f"    Window:  {conf.start_hour:02d}:00 - {conf.end_hour:02d}:00 (member local time)")
    print(f"    Parent:  {conf.parent_role_id}")
    print(f"    Child:   {conf.child_role_id}")
    print(f"    Members: {len(conf.member_timezones)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Time Role Keeper — local-time Discord roles")
    parser.add_argument("mode", nargs="?", default="run", choices=["run", "check-config"])
    parser.add_argument("--config", help="Configuration file (default: conf/conf.json)")
    parser.add_argument("--no-api", action="store_true", help="Do not serve the status API")
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValueError as e:
        parser.error(str(e))
    if args.config:
        settings.config_path = Path(args.config)
    if args.no_api:
        settings.api_enabled = False

    if args.mode == "check-config":
        return check_config(settings)

    configure_logging(settings)
    try:
        return asyncio.run(run(settings))
    except ConfigLoadError as e:
        logger.error("Failed to setup the configuration: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Received CTRL+C - Exiting")
        return 0


if __name__ == "__main__":
    sys.exit(main())
