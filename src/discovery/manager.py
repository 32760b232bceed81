"""
Temperature discovery manager
Finds temperature characteristics through the HAP client and turns the first one into a reading
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

import pytz

from config_loader import parse_hosts
from .errors import DiscoveryError, HAPClientError, NoReadingAvailable
from .hap_client import HAPClient
from .models import AccessoryDirectory, Characteristic, TemperatureDevice, TemperatureReading

logger = logging.getLogger(__name__)

CURRENT_TEMPERATURE_TYPE = "CurrentTemperature"

def is_temperature_characteristic(char: Characteristic) -> bool:
    """Loose match: exact type tag, or "Temperature" anywhere in the description"""
    if char.value is None:
        return False
    return char.type == CURRENT_TEMPERATURE_TYPE or "Temperature" in (char.description or "")

def find_temperature_devices(directory: AccessoryDirectory) -> List[TemperatureDevice]:
    """Project every matching characteristic into a TemperatureDevice, in directory order"""
    devices = []
    logger.info(f"Discovered accessories: {len(directory)}")

    for device_id, accessory in directory.items():
        logger.debug(f"Checking device: {device_id} {accessory.name}")
        for service in accessory.services:
            for char in service.characteristics:
                if not is_temperature_characteristic(char):
                    continue
                devices.append(TemperatureDevice(
                    name=accessory.name or f"Device-{device_id}",
                    device_id=device_id,
                    aid=char.aid,
                    iid=char.iid,
                    temperature=char.value,
                    host=accessory.host,
                    port=accessory.port
                ))
                logger.info(f"Found temperature sensor: {char.value}°C")

    return devices

def select_primary_device(devices: List[TemperatureDevice]) -> TemperatureDevice:
    if not devices:
        raise NoReadingAvailable("No accessories with temperature sensors found")
    return devices[0]


class DiscoveryResultCell:
    """Outcome of one discovery call. Only the first settle counts."""

    def __init__(self):
        self._future = asyncio.get_running_loop().create_future()

    @property
    def settled(self) -> bool:
        return self._future.done()

    def resolve(self, devices: List[TemperatureDevice]) -> bool:
        if self._future.done():
            return False
        self._future.set_result(devices)
        return True

    def fail(self, error: Exception) -> bool:
        if self._future.done():
            return False
        self._future.set_exception(error)
        return True

    async def wait(self) -> List[TemperatureDevice]:
        return await self._future


class TemperatureDiscovery:
    """Discovery-and-read service for HAP temperature sensors"""

    def __init__(self, config: Dict, client_factory: Optional[Callable[..., HAPClient]] = None,
                 tz: Optional[pytz.BaseTzInfo] = None):
        self.hap_config = config['hap']
        self.discovery_timeout = config['discovery']['timeout_seconds']
        self.client_factory = client_factory or HAPClient
        self.tz = tz or pytz.utc

    def _create_client(self) -> HAPClient:
        return self.client_factory(
            debug=self.hap_config['debug'],
            timeout=self.hap_config['timeout'],
            refresh=self.hap_config['refresh'],
            pin=self.hap_config['pin'],
            hosts=parse_hosts(self.hap_config['hosts'])
        )

    async def discover_temperature_devices(self) -> List[TemperatureDevice]:
        """
        Race the client's Ready -> directory path against the discovery timer.
        Whichever settles first decides the result; the other path is left to run out.
        """
        try:
            client = self._create_client()
        except Exception as e:
            logger.error(f"Error creating HAP client: {e}")
            raise DiscoveryError(f"HAP client construction failed: {e}") from e

        loop = asyncio.get_running_loop()
        cell = DiscoveryResultCell()
        devices: List[TemperatureDevice] = []

        async def on_ready():
            logger.info("HAP client ready, getting accessories...")
            try:
                directory = await client.accessories()
            except HAPClientError as e:
                logger.error(f"Error discovering accessories: {e}")
                cell.fail(DiscoveryError(f"Accessory directory fetch failed: {e}"))
                return
            devices.extend(find_temperature_devices(directory))
            cell.resolve(devices)

        def on_event(event):
            logger.info(f"HAP event received: {event}")

        def on_timeout():
            if not devices:
                logger.info("No temperature sensors found, resolving with empty list")
                cell.resolve([])

        def on_start_done(task: asyncio.Task):
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                logger.error(f"Error starting HAP client: {error}")
                cell.fail(DiscoveryError(f"HAP client start failed: {error}"))

        client.on("Ready", on_ready)
        client.on("hapEvent", on_event)

        loop.call_later(self.discovery_timeout, on_timeout)

        start_task = asyncio.create_task(client.start())
        start_task.add_done_callback(on_start_done)

        try:
            return await cell.wait()
        finally:
            # Stops the refresh loop only; a late Ready still runs but cannot settle the cell
            await client.close()

    async def get_temperature(self) -> Optional[TemperatureReading]:
        """Read the first discovered temperature sensor, or None when there is nothing to read"""
        logger.info("Fetching temperature from HAP accessories...")

        try:
            devices = await self.discover_temperature_devices()
            device = select_primary_device(devices)
        except NoReadingAvailable as e:
            logger.info(str(e))
            return None
        except DiscoveryError as e:
            logger.error(f"Error fetching temperature: {e}")
            return None

        logger.info(f"Found device: {device.name}")

        reading = TemperatureReading(
            temperature=device.temperature,
            timestamp=datetime.now(self.tz),
            device_name=device.name
        )
        logger.info(f"Temperature: {reading.temperature}°C at {reading.timestamp.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        return reading
