"""
Discovery error types
"""


class HAPClientError(Exception):
    """The HAP client could not fetch an accessory directory"""


class DiscoveryError(Exception):
    """Client construction, startup or directory fetch failed"""


class NoReadingAvailable(Exception):
    """Discovery finished without finding a temperature characteristic"""
