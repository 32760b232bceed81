"""
Configuration loader for the HAP Temperature Monitor
Loads and validates configuration from YAML files, falling back to built-in defaults
"""

import re
import yaml
import logging
from typing import Dict, Any, List, Tuple
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

DEFAULT_HAP_PORT = 51826
PIN_PATTERN = re.compile(r'^\d{3}-\d{2}-\d{3}$')

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    A missing file is not an error: the built-in defaults are used instead
    """
    try:
        config_file = Path(config_path)
        if config_file.exists():
            with open(config_file, 'r') as f:
                config = yaml.safe_load(f) or {}
            if not isinstance(config, dict):
                raise ValueError(f"Configuration root must be a mapping: {config_path}")
            logger.info(f"Configuration loaded from {config_path}")
        else:
            logger.info(f"Configuration file not found: {config_path}, using built-in defaults")
            config = {}

        # Apply defaults
        config = _apply_defaults(config)

        # Validate what we ended up with
        _validate_config(config)

        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate the merged configuration"""
    hap = config['hap']

    pin = str(hap['pin'])
    if not PIN_PATTERN.match(pin):
        raise ValueError(f"hap.pin must look like 123-45-678, got: {pin}")

    if not hap['hosts']:
        raise ValueError("hap.hosts is required and must not be empty")
    for host in hap['hosts']:
        parse_host(host)

    for field in ('timeout', 'refresh'):
        if hap[field] < 0:
            raise ValueError(f"hap.{field} must not be negative")

    if config['discovery']['timeout_seconds'] <= 0:
        raise ValueError("discovery.timeout_seconds must be positive")

    timezone_name = config['site']['timezone']
    if timezone_name not in pytz.all_timezones_set:
        raise ValueError(f"Unknown site.timezone: {timezone_name}")

def parse_host(entry: str) -> Tuple[str, int]:
    """Split a "host[:port]" entry, defaulting to the HAP port"""
    if not isinstance(entry, str) or not entry.strip():
        raise ValueError(f"Invalid HAP host entry: {entry!r}")

    host, sep, port = entry.strip().rpartition(':')
    if not sep:
        return entry.strip(), DEFAULT_HAP_PORT
    if not host or not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"Invalid HAP host entry: {entry!r}")
    return host, int(port)

def parse_hosts(entries: List[str]) -> List[Tuple[str, int]]:
    return [parse_host(entry) for entry in entries]

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Site defaults
    if 'site' not in config:
        config['site'] = {}
    config['site'].setdefault('timezone', 'UTC')

    # HAP client defaults
    if 'hap' not in config:
        config['hap'] = {}
    hap_defaults = {
        'debug': True,
        'timeout': 15,
        'refresh': 40,
        'pin': '031-45-154',
        'hosts': [f'127.0.0.1:{DEFAULT_HAP_PORT}']
    }
    for key, default_value in hap_defaults.items():
        if key not in config['hap']:
            config['hap'][key] = default_value

    # Discovery defaults
    if 'discovery' not in config:
        config['discovery'] = {}
    config['discovery'].setdefault('timeout_seconds', 20)

    # Logging defaults
    if 'logging' not in config:
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/temperature_monitor.log',
        'console_output': True
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config

def get_site_timezone(config: Dict) -> pytz.BaseTzInfo:
    """Timezone used for reading timestamps and log output"""
    return pytz.timezone(config.get('site', {}).get('timezone', 'UTC'))


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in the site timezone"""

    def __init__(self, fmt=None, tz=None):
        super().__init__(fmt)
        self.tz = tz or pytz.utc

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with site-timezone timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, get_site_timezone(config))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "site": {
            "timezone": "America/New_York"
        },
        "hap": {
            "debug": True,
            "timeout": 15,
            "refresh": 40,
            "pin": "031-45-154",
            "hosts": ["127.0.0.1:51826", "10.0.60.20:51826"]
        },
        "discovery": {
            "timeout_seconds": 20
        },
        "logging": {
            "level": "INFO",
            "file": "logs/temperature_monitor.log",
            "console_output": True
        }
    }
