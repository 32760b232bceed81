"""
HAP Temperature Monitor - Main Entry Point
"""

import asyncio
import signal
import sys
import logging
import os

from config_loader import load_config, setup_logging, get_site_timezone
from cron_scheduler import CronScheduler
from discovery.manager import TemperatureDiscovery
from services.temperature_monitor import TemperatureMonitor

logger = logging.getLogger(__name__)

async def main() -> int:
    """Main entry point"""

    # Get config file path from environment variable or use default
    config_path = os.environ.get('CONFIG_FILE', 'config/config.yaml')
    config = load_config(config_path)
    setup_logging(config)
    logger.info(f"Using configuration file name from environment: {config_path}")

    tz = get_site_timezone(config)
    discovery = TemperatureDiscovery(config, tz=tz)
    scheduler = CronScheduler(tz)
    monitor = TemperatureMonitor(discovery, scheduler)

    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()
    exit_code = 0

    def signal_handler(signum):
        logger.info(f"Received signal {signum}, shutting down temperature monitor...")
        monitor.stop()
        shutdown.set()

    def exception_handler(loop, context):
        nonlocal exit_code
        error = context.get('exception')
        logger.critical(f"Unhandled error: {context.get('message')}: {error!r}")
        exit_code = 1
        shutdown.set()

    loop.set_exception_handler(exception_handler)
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, signal_handler, signum)

    try:
        monitor.start_hourly_monitoring()
        await shutdown.wait()
    finally:
        await scheduler.shutdown()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
        loop.set_exception_handler(None)

    return exit_code

def run():
    try:
        exit_code = asyncio.run(main())
    except Exception as e:
        logger.critical(f"Uncaught exception: {e}", exc_info=True)
        exit_code = 1
    sys.exit(exit_code)

if __name__ == "__main__":
    run()
