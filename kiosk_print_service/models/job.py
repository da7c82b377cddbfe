"""
Print Job Model
===============

A print job is a set of documents bound for one printer connection.
"""

from dataclasses import dataclass
from typing import Dict, Any, Tuple

from ..config import ZPL_PORT
from ..errors import KioskPrintError

CONNECTION_KINDS = ('tcp', 'usb', 'serial')


@dataclass(frozen=True)
class ConnectionTarget:
    """Where a job must be sent.

    `address` is transport specific: `host[:port]` for tcp, the device
    serial number for usb.
    """

    kind: str = 'tcp'
    address: str = ''

    @classmethod
    def parse(cls, value: str, default_kind: str = 'tcp') -> 'ConnectionTarget':
        """
        Parse a printer address.

        A bare address (`192.168.1.50:9100`) uses `default_kind`;
        `usb://SN123` or `serial:///dev/ttyS0` select the kind explicitly.
        """
        kind, sep, address = value.partition('://')
        if sep and kind.lower() in CONNECTION_KINDS:
            return cls(kind=kind.lower(), address=address)
        return cls(kind=default_kind, address=value)

    def split_host_port(self, default_port: int = ZPL_PORT) -> tuple:
        """
        Split a tcp address into host and port.

        IPv6 hosts must be bracketed: `[fe80::1]:9100`.

        Raises:
            KioskPrintError: if the port is not a number.
        """
        address = self.address
        if address.startswith('['):
            host, _, rest = address[1:].partition(']')
            port = rest[1:] if rest.startswith(':') else rest
        else:
            host, _, port = address.partition(':')

        if not port:
            return host, default_port
        try:
            return host, int(port)
        except ValueError:
            raise KioskPrintError(f"Invalid printer address '{address}'", component='Printing') from None

    def __str__(self) -> str:
        return f'{self.kind}://{self.address}'

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'address': self.address}


@dataclass(frozen=True)
class Document:
    """A single rendered label."""

    name: str
    data: bytes


@dataclass(frozen=True)
class PrintJob:
    """Documents grouped for one connection target. Never changed once built."""

    target: ConnectionTarget
    documents: Tuple[Document, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'documents', tuple(self.documents))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'target': self.target.to_dict(),
            'documents': [
                {'name': d.name, 'bytes': len(d.data)} for d in self.documents
            ],
        }
