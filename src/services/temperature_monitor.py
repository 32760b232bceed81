"""
Temperature Monitor - hourly HAP temperature checks
"""

import logging

from cron_scheduler import CronScheduler, spawn
from discovery.manager import TemperatureDiscovery
from services.reading_processor import process_temperature_reading

logger = logging.getLogger(__name__)

HOURLY_SCHEDULE = "0 * * * *"

class TemperatureMonitor:
    """Owns the monitoring state and the hourly check registration"""

    def __init__(self, discovery: TemperatureDiscovery, scheduler: CronScheduler):
        self.discovery = discovery
        self.scheduler = scheduler
        self.is_running = False

    def start_hourly_monitoring(self):
        """Register the hourly check and fire one check right away. Needs a running event loop."""
        if self.is_running:
            logger.warning("Temperature monitoring is already running")
            return

        self.is_running = True
        logger.info("Starting hourly temperature monitoring...")

        self.scheduler.schedule(HOURLY_SCHEDULE, self.scheduled_check)
        logger.info("Hourly monitoring scheduled (runs at the top of every hour)")

        logger.info("Getting initial temperature reading...")
        spawn(self.check_temperature(), name="initial-temperature-check")

    async def scheduled_check(self):
        logger.info("Scheduled temperature check...")
        await self.check_temperature()

    async def check_temperature(self):
        reading = await self.discovery.get_temperature()
        if reading:
            process_temperature_reading(reading)

    def stop(self):
        # The hourly registration stays in place; only the state flag changes
        self.is_running = False
        logger.info("Temperature monitoring stopped")
