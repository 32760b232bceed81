"""
Discovery data structures and models
"""

from datetime import datetime
from typing import Dict, List, Optional
from dataclasses import dataclass, field

@dataclass
class Characteristic:
    """A single readable attribute of a HAP service"""
    aid: int
    iid: int
    type: str
    value: Optional[float]
    description: Optional[str] = None

@dataclass
class Service:
    """A HAP service and its characteristics, in accessory order"""
    iid: int
    type: str
    characteristics: List[Characteristic] = field(default_factory=list)

@dataclass
class AccessoryRecord:
    """One accessory as seen in a directory snapshot"""
    aid: int
    host: str
    port: int
    name: Optional[str] = None
    services: List[Service] = field(default_factory=list)

# device id -> accessory, in discovery order
AccessoryDirectory = Dict[str, AccessoryRecord]

@dataclass
class TemperatureDevice:
    """Represents a discovered temperature characteristic"""
    name: str
    device_id: str
    aid: int
    iid: int
    temperature: float
    host: str
    port: int

@dataclass
class TemperatureReading:
    """A single temperature sample taken from the primary device"""
    temperature: float
    timestamp: datetime
    device_name: Optional[str] = None
