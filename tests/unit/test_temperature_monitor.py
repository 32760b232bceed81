from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

import pytest

from discovery.models import TemperatureReading
from services.temperature_monitor import HOURLY_SCHEDULE, TemperatureMonitor


class _StubScheduler:
    def __init__(self) -> None:
        self.registrations: List[Tuple[str, Callable[[], Awaitable]]] = []

    def schedule(self, expression: str, callback: Callable[[], Awaitable]) -> None:
        self.registrations.append((expression, callback))


class _StubDiscovery:
    def __init__(self, reading: Optional[TemperatureReading]) -> None:
        self.reading = reading
        self.calls = 0

    async def get_temperature(self) -> Optional[TemperatureReading]:
        self.calls += 1
        return self.reading


def _reading(temperature: float = 22.5) -> TemperatureReading:
    return TemperatureReading(
        temperature=temperature,
        timestamp=datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc),
        device_name="Bedroom",
    )


async def _wait_for_calls(discovery: _StubDiscovery, count: int) -> None:
    for _ in range(100):
        if discovery.calls >= count:
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_start_twice_registers_once(caplog) -> None:
    scheduler = _StubScheduler()
    discovery = _StubDiscovery(_reading())
    monitor = TemperatureMonitor(discovery, scheduler)

    with caplog.at_level(logging.WARNING, logger="services.temperature_monitor"):
        monitor.start_hourly_monitoring()
        monitor.start_hourly_monitoring()
    await _wait_for_calls(discovery, 1)

    assert len(scheduler.registrations) == 1
    assert scheduler.registrations[0][0] == HOURLY_SCHEDULE == "0 * * * *"
    assert discovery.calls == 1
    assert "Temperature monitoring is already running" in caplog.messages


@pytest.mark.asyncio
async def test_start_runs_initial_check_and_processes_reading(caplog) -> None:
    discovery = _StubDiscovery(_reading(30.0))
    monitor = TemperatureMonitor(discovery, _StubScheduler())

    with caplog.at_level(logging.INFO):
        monitor.start_hourly_monitoring()
        await _wait_for_calls(discovery, 1)
        await asyncio.sleep(0)

    assert monitor.is_running
    assert "Temperature is high - recommend cooling" in caplog.messages


@pytest.mark.asyncio
async def test_scheduled_check_processes_reading(caplog) -> None:
    scheduler = _StubScheduler()
    discovery = _StubDiscovery(_reading(15.0))
    monitor = TemperatureMonitor(discovery, scheduler)
    monitor.start_hourly_monitoring()
    await _wait_for_calls(discovery, 1)

    _, callback = scheduler.registrations[0]
    with caplog.at_level(logging.INFO):
        await callback()

    assert discovery.calls == 2
    assert "Scheduled temperature check..." in caplog.messages
    assert "Temperature is low - recommend heating" in caplog.messages


@pytest.mark.asyncio
async def test_no_reading_is_not_processed(caplog) -> None:
    monitor = TemperatureMonitor(_StubDiscovery(None), _StubScheduler())

    with caplog.at_level(logging.INFO):
        await monitor.check_temperature()

    assert not any(message.startswith("Temperature is") for message in caplog.messages)


@pytest.mark.asyncio
async def test_stop_only_flips_state() -> None:
    scheduler = _StubScheduler()
    discovery = _StubDiscovery(_reading())
    monitor = TemperatureMonitor(discovery, scheduler)
    monitor.start_hourly_monitoring()
    await _wait_for_calls(discovery, 1)

    monitor.stop()

    assert monitor.is_running is False
    # The hourly registration is left in place and still runs checks
    assert len(scheduler.registrations) == 1
    await scheduler.registrations[0][1]()
    assert discovery.calls == 2
