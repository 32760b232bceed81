"""
Comfort-band classification for temperature readings
"""

import logging
from enum import Enum

from discovery.models import TemperatureReading

logger = logging.getLogger(__name__)

HIGH_TEMPERATURE_THRESHOLD = 25.0
LOW_TEMPERATURE_THRESHOLD = 18.0

class ComfortBand(Enum):
    HIGH = "high"
    LOW = "low"
    COMFORTABLE = "comfortable"

BAND_NOTICES = {
    ComfortBand.HIGH: "Temperature is high - recommend cooling",
    ComfortBand.LOW: "Temperature is low - recommend heating",
    ComfortBand.COMFORTABLE: "Temperature is comfortable",
}

def classify_temperature(temperature: float) -> ComfortBand:
    """Both thresholds are inclusive on the comfortable side"""
    if temperature > HIGH_TEMPERATURE_THRESHOLD:
        return ComfortBand.HIGH
    if temperature < LOW_TEMPERATURE_THRESHOLD:
        return ComfortBand.LOW
    return ComfortBand.COMFORTABLE

def process_temperature_reading(reading: TemperatureReading) -> None:
    logger.info("Processing temperature reading:")
    logger.info(f"   Device: {reading.device_name}")
    logger.info(f"   Temperature: {reading.temperature}°C")
    logger.info(f"   Time: {reading.timestamp.strftime('%Y-%m-%d %H:%M:%S %Z')}")

    band = classify_temperature(reading.temperature)
    logger.info(BAND_NOTICES[band])
