"""
Base Transport
==============

Abstract base class for print transports.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import ConnectionTarget, Printer, PrintJob


class BaseTransport(ABC):
    """Abstract base class for print transports."""

    #: Connection kind this transport handles
    kind = ''

    def supports_connection(self, target: ConnectionTarget) -> bool:
        """Check if the transport can print over the given connection."""
        return target.kind == self.kind

    async def discover_devices(self) -> List[Printer]:
        """
        Return automatically discovered printers.

        Transports without discovery return an empty list.
        """
        return []

    @abstractmethod
    async def print(self, job: PrintJob) -> None:
        """
        Send every document of the job, in order, over one connection.

        Args:
            job: The print job

        Raises:
            KioskPrintError: if the job could not be sent
        """
        pass
