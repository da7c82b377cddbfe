"""
Kiosk Print Service Sockets
===========================

Event-driven TCP channel and server on asyncio streams.
"""

from .emitter import EventEmitter
from .channel import SocketChannel, SocketInfo, ReceiveEvent, ReceiveErrorEvent, CloseEvent
from .server import SocketServer, ClientEvent, ClientDataEvent, ClientErrorEvent, ServerErrorEvent

__all__ = [
    'EventEmitter',
    'SocketChannel', 'SocketInfo', 'ReceiveEvent', 'ReceiveErrorEvent', 'CloseEvent',
    'SocketServer', 'ClientEvent', 'ClientDataEvent', 'ClientErrorEvent', 'ServerErrorEvent',
]
