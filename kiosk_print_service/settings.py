"""
Kiosk Settings
==============

The three settings the print path reads. Storage and managed-override
precedence live with the kiosk shell; this service receives the
resolved values.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

from . import config


@dataclass
class KioskSettings:
    """Resolved kiosk settings consumed by the dispatcher."""

    # Always wins over the printer address on each label
    printer_override: Optional[str] = None

    enable_label_caching: bool = True
    cache_duration: int = 1800  # seconds

    @classmethod
    def from_config(cls) -> 'KioskSettings':
        """Create from the environment-backed configuration."""
        return cls(
            printer_override=config.PRINTER_OVERRIDE,
            enable_label_caching=config.ENABLE_LABEL_CACHING,
            cache_duration=config.CACHE_DURATION,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
