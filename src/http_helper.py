# HTTP Helper for HAP Connections
# Session configuration for local HAP bridges running in insecure mode

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_hap_session(timeout_seconds: float = 15, pin: str = None) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for local HAP connections (always HTTP)
    The pairing code travels in the Authorization header, as insecure-mode bridges expect
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # Max 2 connections per bridge
        ssl=False,                  # Insecure-mode bridges use HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    headers = {'Content-Type': 'application/hap+json'}
    if pin:
        headers['Authorization'] = pin

    return aiohttp.ClientSession(
        connector=connector,
        headers=headers,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
