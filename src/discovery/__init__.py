"""
Discovery module for HAP temperature sensors
"""

from .errors import DiscoveryError, HAPClientError, NoReadingAvailable
from .hap_client import HAPClient
from .manager import TemperatureDiscovery
from .models import TemperatureDevice, TemperatureReading

__all__ = [
    'DiscoveryError', 'HAPClientError', 'NoReadingAvailable', 'HAPClient',
    'TemperatureDiscovery', 'TemperatureDevice', 'TemperatureReading'
]
