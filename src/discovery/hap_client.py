"""
HAP client for bridges running in insecure mode
Probes known hosts over HTTP, emits Ready once the first probe round is done,
and emits hapEvent for characteristic changes seen on later refreshes
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from http_helper import create_hap_session
from .errors import HAPClientError
from .models import AccessoryDirectory, AccessoryRecord, Characteristic, Service

logger = logging.getLogger(__name__)

HAP_UUID_SUFFIX = "-0000-1000-8000-0026BB765291"

# Short HAP UUIDs for the types this service cares about
HAP_TYPE_NAMES = {
    "3E": "AccessoryInformation",
    "8A": "TemperatureSensor",
    "23": "Name",
    "11": "CurrentTemperature",
    "35": "TargetTemperature",
    "36": "TemperatureDisplayUnits",
    "10": "CurrentRelativeHumidity",
}

def normalize_type(raw_type: Any) -> str:
    """Map a short or full HAP UUID to its type name; unknown tags pass through"""
    tag = str(raw_type).upper()
    if tag.endswith(HAP_UUID_SUFFIX):
        tag = tag[:-len(HAP_UUID_SUFFIX)]
    short = tag.lstrip('0') or '0'
    return HAP_TYPE_NAMES.get(short, str(raw_type))

def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None

def parse_accessories(host: str, port: int, payload: Dict) -> AccessoryDirectory:
    """
    Turn a GET /accessories response into directory records
    Names come from the Name characteristic of the AccessoryInformation service
    """
    if not isinstance(payload, dict) or not isinstance(payload.get('accessories', []), list):
        raise HAPClientError(f"Malformed accessory payload from {host}:{port}")

    directory: AccessoryDirectory = {}
    for raw_accessory in payload.get('accessories', []):
        aid = raw_accessory.get('aid')
        name = None
        services = []

        for raw_service in raw_accessory.get('services') or []:
            service_type = normalize_type(raw_service.get('type', ''))
            characteristics = []

            for raw_char in raw_service.get('characteristics') or []:
                char_type = normalize_type(raw_char.get('type', ''))
                raw_value = raw_char.get('value')
                characteristics.append(Characteristic(
                    aid=aid,
                    iid=raw_char.get('iid'),
                    type=char_type,
                    value=_numeric(raw_value),
                    description=raw_char.get('description')
                ))
                if service_type == "AccessoryInformation" and char_type == "Name" and isinstance(raw_value, str):
                    name = raw_value or None

            services.append(Service(
                iid=raw_service.get('iid'),
                type=service_type,
                characteristics=characteristics
            ))

        directory[f"{host}:{port}/{aid}"] = AccessoryRecord(
            aid=aid,
            host=host,
            port=port,
            name=name,
            services=services
        )

    return directory

def _characteristic_index(directory: AccessoryDirectory) -> Dict[Tuple[str, int], Characteristic]:
    index = {}
    for device_id, accessory in directory.items():
        for service in accessory.services:
            for char in service.characteristics:
                index[(device_id, char.iid)] = char
    return index

def diff_values(previous: AccessoryDirectory, current: AccessoryDirectory) -> Iterator[Dict[str, Any]]:
    """Yield one event per characteristic whose value changed between snapshots"""
    before = _characteristic_index(previous)
    for (device_id, iid), char in _characteristic_index(current).items():
        old = before.get((device_id, iid))
        if old is not None and old.value != char.value:
            accessory = current[device_id]
            yield {
                'device_id': device_id,
                'host': accessory.host,
                'port': accessory.port,
                'aid': char.aid,
                'iid': iid,
                'type': char.type,
                'value': char.value,
                'previous': old.value
            }


class HAPClient:
    """Event-driven client for HAP bridges reachable over plain HTTP"""

    def __init__(self, debug: bool = False, timeout: float = 15, refresh: float = 40,
                 pin: Optional[str] = None, hosts: Optional[List[Tuple[str, int]]] = None):
        self.debug = debug
        self.timeout = timeout
        self.refresh = refresh
        self.pin = pin
        self.hosts = list(hosts or [])

        # (host, port) -> last directory fetched from that instance
        self.instances: Dict[Tuple[str, int], AccessoryDirectory] = {}
        self.running = False

        self._handlers: Dict[str, List[Callable]] = {}
        self._handler_tasks: Set[asyncio.Task] = set()
        self._refresh_task: Optional[asyncio.Task] = None
        self._verbose = logging.INFO if debug else logging.DEBUG

    def on(self, event: str, callback: Callable) -> None:
        self._handlers.setdefault(event, []).append(callback)

    def emit(self, event: str, *args) -> None:
        """Call every handler for event; coroutine handlers run as tasks"""
        for callback in list(self._handlers.get(event, [])):
            result = callback(*args)
            if asyncio.iscoroutine(result):
                task = asyncio.create_task(result, name=f"hap:{event}")
                self._handler_tasks.add(task)
                task.add_done_callback(self._handler_done)

    def _handler_done(self, task: asyncio.Task) -> None:
        self._handler_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Handler for {task.get_name()} failed: {error!r}",
                         exc_info=(type(error), error, error.__traceback__))

    async def start(self) -> None:
        """Probe every configured host, then emit Ready"""
        logger.info(f"Starting HAP discovery on {len(self.hosts)} host(s)...")
        self.running = True

        self.instances = await self._probe_all()
        logger.info(f"HAP discovery complete: {len(self.instances)} instance(s) reachable")

        self.emit('Ready')

        if self.refresh > 0 and self.running:
            self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def accessories(self) -> AccessoryDirectory:
        """Fetch a fresh directory snapshot from every known instance"""
        targets = list(self.instances)
        if not targets:
            return {}

        results = await asyncio.gather(
            *[self._fetch_instance(host, port) for host, port in targets],
            return_exceptions=True
        )

        directory: AccessoryDirectory = {}
        failures = []
        for key, result in zip(targets, results):
            if isinstance(result, Exception):
                failures.append(f"{key[0]}:{key[1]} ({result})")
                logger.warning(f"Accessory fetch failed for {key[0]}:{key[1]}: {result}")
                continue
            self.instances[key] = result
            directory.update(result)

        if len(failures) == len(targets):
            raise HAPClientError(f"No HAP instance answered: {', '.join(failures)}")

        return directory

    async def close(self) -> None:
        self.running = False
        if self._refresh_task:
            self._refresh_task.cancel()
            await asyncio.gather(self._refresh_task, return_exceptions=True)
            self._refresh_task = None

    async def _probe_all(self) -> Dict[Tuple[str, int], AccessoryDirectory]:
        results = await asyncio.gather(
            *[self._fetch_instance(host, port) for host, port in self.hosts],
            return_exceptions=True
        )

        found = {}
        for (host, port), result in zip(self.hosts, results):
            if isinstance(result, Exception):
                logger.warning(f"HAP instance {host}:{port} not reachable: {result}")
                continue
            found[(host, port)] = result
        return found

    async def _fetch_instance(self, host: str, port: int) -> AccessoryDirectory:
        url = f"http://{host}:{port}/accessories"
        async with create_hap_session(self.timeout, self.pin) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise HAPClientError(f"HTTP {response.status} for {url}")
                # Bridges answer with application/hap+json
                payload = await response.json(content_type=None)

        directory = parse_accessories(host, port, payload)
        logger.log(self._verbose, f"{url}: {len(directory)} accessories")
        return directory

    async def _refresh_loop(self):
        """Re-probe all hosts every refresh interval and report value changes"""
        while self.running:
            await asyncio.sleep(self.refresh)
            if not self.running:
                break

            found = await self._probe_all()
            for key, directory in found.items():
                previous = self.instances.get(key)
                if previous is None:
                    logger.info(f"New HAP instance found: {key[0]}:{key[1]}")
                else:
                    for event in diff_values(previous, directory):
                        self.emit('hapEvent', event)
                self.instances[key] = directory
