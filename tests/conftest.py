from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from config_loader import _apply_defaults  # noqa: E402
from discovery.models import AccessoryRecord, Characteristic, Service  # noqa: E402


def make_characteristic(
    value: Optional[float],
    iid: int = 10,
    aid: int = 1,
    type: str = "CurrentTemperature",
    description: Optional[str] = None,
) -> Characteristic:
    return Characteristic(aid=aid, iid=iid, type=type, value=value, description=description)


def make_accessory(
    name: Optional[str],
    characteristics: List[Characteristic],
    aid: int = 1,
    host: str = "10.0.60.20",
    port: int = 51826,
) -> AccessoryRecord:
    return AccessoryRecord(
        aid=aid,
        host=host,
        port=port,
        name=name,
        services=[Service(iid=8, type="TemperatureSensor", characteristics=characteristics)],
    )


def device_id(accessory: AccessoryRecord) -> str:
    return f"{accessory.host}:{accessory.port}/{accessory.aid}"


def build_directory(*accessories: AccessoryRecord) -> Dict[str, AccessoryRecord]:
    return {device_id(accessory): accessory for accessory in accessories}


class FakeHAPClient:
    """Stands in for HAPClient: same event surface, no network"""

    def __init__(
        self,
        directory: Optional[Dict[str, AccessoryRecord]] = None,
        emit_ready: bool = True,
        accessories_error: Optional[Exception] = None,
        start_error: Optional[Exception] = None,
        **options: Any,
    ) -> None:
        self.directory = directory or {}
        self.emit_ready = emit_ready
        self.accessories_error = accessories_error
        self.start_error = start_error
        self.options = options
        self.handlers: Dict[str, List[Callable]] = {}
        self.accessories_calls = 0
        self.closed = False

    def on(self, event: str, callback: Callable) -> None:
        self.handlers.setdefault(event, []).append(callback)

    async def fire(self, event: str, *args: Any) -> None:
        for callback in self.handlers.get(event, []):
            result = callback(*args)
            if asyncio.iscoroutine(result):
                await result

    async def start(self) -> None:
        if self.start_error:
            raise self.start_error
        if self.emit_ready:
            await self.fire("Ready")

    async def accessories(self) -> Dict[str, AccessoryRecord]:
        self.accessories_calls += 1
        if self.accessories_error:
            raise self.accessories_error
        return self.directory

    async def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    def __init__(self, **client_kwargs: Any) -> None:
        self.client_kwargs = client_kwargs
        self.clients: List[FakeHAPClient] = []

    def __call__(self, **options: Any) -> FakeHAPClient:
        client = FakeHAPClient(**self.client_kwargs, **options)
        self.clients.append(client)
        return client


@pytest.fixture()
def config() -> Dict[str, Any]:
    config = _apply_defaults({})
    config["discovery"]["timeout_seconds"] = 0.1
    config["logging"]["file"] = None
    return config
