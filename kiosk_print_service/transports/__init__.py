"""
Kiosk Print Service Transports
==============================

Transports that carry print jobs to printers.
"""

from .base import BaseTransport
from .tcp import TcpTransport
from .usb import UsbTransport

__all__ = ['BaseTransport', 'TcpTransport', 'UsbTransport', 'default_transports']


def default_transports() -> list:
    """Transports in the order they are asked to accept a job."""
    return [TcpTransport(), UsbTransport()]
