"""
Monitoring Protocol
===================

Zabbix agent framing. Every framed message starts with a 13 byte header:

    offset  size  field
    0       4     "ZBXD"
    4       1     flags (0x01 protocol, 0x02 compression)
    5       4     data length, uint32 little-endian
    9       4     reserved, uint32 big-endian (uncompressed size when compressed)

followed by the UTF-8 payload.
"""

import enum
import json
import struct
from dataclasses import dataclass
from typing import Any

from ..errors import ProtocolError

MAGIC = b'ZBXD'
HEADER_SIZE = 13

_HEADER = struct.Struct('<4sBI')
_RESERVED = struct.Struct('>I')

# Error kinds
NOT_SUPPORTED = 'ZBX_NOTSUPPORTED'
ERROR = 'ZBX_ERROR'


class HeaderFlag(enum.IntFlag):
    ZABBIX_PROTOCOL = 0x01
    COMPRESSION = 0x02


@dataclass(frozen=True)
class WireHeader:
    magic: str
    flags: int
    length: int
    reserved: int = 0


def build_header(flags: int, data_size: int, uncompressed_size: int = 0) -> bytes:
    """
    Build a protocol header.

    Args:
        flags: HeaderFlag bits
        data_size: Payload length in bytes
        uncompressed_size: Payload size before compression (if compressed)
    """
    return _HEADER.pack(MAGIC, flags, data_size) + _RESERVED.pack(uncompressed_size)


def parse_header(data: bytes) -> WireHeader:
    """Parse the first 13 bytes of a message."""
    if len(data) < HEADER_SIZE:
        raise ProtocolError(ERROR, f'Header needs {HEADER_SIZE} bytes, got {len(data)}')

    magic, flags, length = _HEADER.unpack_from(data, 0)
    if magic != MAGIC:
        raise ProtocolError(ERROR, f'Bad protocol magic {magic!r}')
    (reserved,) = _RESERVED.unpack_from(data, _HEADER.size)

    return WireHeader(magic=magic.decode("ascii"), flags=flags, length=length, reserved=reserved)


def build_packet(data: str) -> bytes:
    """Frame string data: header plus UTF-8 payload."""
    payload = data.encode('utf-8')
    return build_header(HeaderFlag.ZABBIX_PROTOCOL, len(payload)) + payload


def encode_value(value: Any) -> bytes:
    """Frame a check result as a JSON line."""
    return build_packet(json.dumps(value) + '\n')


def parse_request(line: str) -> tuple:
    """Split a request line into item key and arguments."""
    key, *args = line.split()
    return key, args
