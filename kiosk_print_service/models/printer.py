"""
Printer Model
=============

A printer found by device discovery.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


@dataclass
class Printer:
    """Discovered printer and how to reach it."""

    kind: str = 'usb'  # tcp, usb, serial
    address: str = ''  # usb: serial number
    name: str = ''

    manufacturer: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
