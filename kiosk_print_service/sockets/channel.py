"""
Socket Channel
==============

One TCP connection as an event source plus an awaitable command surface.

Commands (`connect`, `send`, `disconnect`, `close`, `set_paused`) are
coroutines that raise on failure. Errors that happen while receiving
arrive asynchronously and are reported as `receive_error` events.

Events:
    receive        ReceiveEvent, for each chunk read while not paused
    receive_error  ReceiveErrorEvent; reading stops until set_paused(False)
    close          CloseEvent, once, when the channel is closed
"""

import asyncio
import errno
import itertools
import logging
from dataclasses import dataclass
from typing import Optional, Union

from .emitter import EventEmitter
from ..errors import SocketError, ChannelClosedError

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 4096

_socket_ids = itertools.count(1)


@dataclass
class SocketInfo:
    """Snapshot of a socket's OS-level state."""

    socket_id: int
    connected: bool = False
    paused: bool = False
    local_address: Optional[str] = None
    local_port: Optional[int] = None
    peer_address: Optional[str] = None
    peer_port: Optional[int] = None


@dataclass
class ReceiveEvent:
    channel: 'SocketChannel'
    data: bytes


@dataclass
class ReceiveErrorEvent:
    channel: 'SocketChannel'
    error: SocketError


@dataclass
class CloseEvent:
    socket_id: int


class SocketChannel(EventEmitter):
    """A TCP client connection."""

    def __init__(self, reader: Optional[asyncio.StreamReader] = None,
                 writer: Optional[asyncio.StreamWriter] = None,
                 paused: bool = False, buffer_size: int = DEFAULT_BUFFER_SIZE):
        super().__init__()
        self.socket_id = next(_socket_ids)
        self.buffer_size = buffer_size
        self.paused = paused
        self.connected = False
        self.local_address: Optional[str] = None
        self.local_port: Optional[int] = None
        self.peer_address: Optional[str] = None
        self.peer_port: Optional[int] = None

        self._reader = None
        self._writer = None
        self._read_task: Optional[asyncio.Task] = None
        self._resume = asyncio.Event()
        if not paused:
            self._resume.set()
        self._closed = False

        if writer is not None:
            self._attach(reader, writer)

    @classmethod
    async def create(cls, buffer_size: int = DEFAULT_BUFFER_SIZE) -> 'SocketChannel':
        """Create an unconnected channel."""
        return cls(buffer_size=buffer_size)

    @classmethod
    def from_streams(cls, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                     paused: bool = True) -> 'SocketChannel':
        """Wrap an accepted connection. Starts paused so nothing is read early."""
        return cls(reader, writer, paused=paused)

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Commands
    # =========================================================================

    async def connect(self, host: str, port: int, timeout: Optional[float] = None) -> int:
        """
        Connect to a remote peer.

        Raises:
            SocketError: with a negative result code if the connection fails.
        """
        self._check_open()
        if self.connected:
            raise SocketError(-errno.EISCONN, 'Socket is already connected')

        try:
            reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except asyncio.TimeoutError:
            raise SocketError(-errno.ETIMEDOUT, f'Connection timeout to {host}:{port}')
        except OSError as e:
            raise SocketError.from_os_error(e, f'{host}:{port}') from e

        self._attach(reader, writer)
        logger.debug("Socket %s connected to %s:%s", self.socket_id, host, port)
        return 0

    async def send(self, data: Union[bytes, str]) -> int:
        """Send data and wait until it has been handed to the OS. Returns bytes sent."""
        self._check_open()
        if not self.connected or self._writer is None:
            raise SocketError(-errno.ENOTCONN, 'Socket is not connected')

        if isinstance(data, str):
            data = data.encode('utf-8')

        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise SocketError.from_os_error(e, 'send') from e

        return len(data)

    async def set_paused(self, paused: bool) -> None:
        """Stop or resume `receive` events."""
        self._check_open()
        self.paused = paused
        if paused:
            self._resume.clear()
        else:
            self._resume.set()

    async def disconnect(self) -> None:
        """Drop the connection. The channel stays usable for another connect."""
        self._check_open()
        await self._drop_connection()

    async def close(self) -> None:
        """
        Close the channel and detach all listeners.

        Closing an already-closed channel does nothing.
        """
        if self._closed:
            return
        self._closed = True

        try:
            await self._drop_connection()
        finally:
            self.paused = True
            self._resume.clear()
            self.emit('close', CloseEvent(self.socket_id))
            self.remove_all_listeners()
            logger.debug("Socket %s closed", self.socket_id)

    async def get_info(self) -> SocketInfo:
        self._check_open()
        return self.info()

    def info(self) -> SocketInfo:
        return SocketInfo(
            socket_id=self.socket_id,
            connected=self.connected,
            paused=self.paused,
            local_address=self.local_address,
            local_port=self.local_port,
            peer_address=self.peer_address,
            peer_port=self.peer_port,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_open(self):
        if self._closed:
            raise ChannelClosedError()

    def _attach(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._reader = reader
        self._writer = writer
        self.connected = True
        self._refresh_info()
        self._read_task = asyncio.get_running_loop().create_task(self._read_loop(reader))

    def _refresh_info(self):
        sockname = peername = None
        if self._writer is not None and self.connected:
            sockname = self._writer.get_extra_info('sockname')
            peername = self._writer.get_extra_info('peername')
        self.local_address, self.local_port = _split_address(sockname)
        self.peer_address, self.peer_port = _split_address(peername)

    async def _drop_connection(self):
        task, self._read_task = self._read_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        writer, self._writer = self._writer, None
        self._reader = None
        self.connected = False
        self._refresh_info()

        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionResetError, BrokenPipeError):
            # Peer already went away; the handle is released either way
            logger.debug("Socket %s peer reset during close", self.socket_id)
        except OSError as e:
            raise SocketError.from_os_error(e, 'close') from e

    async def _read_loop(self, reader: asyncio.StreamReader):
        while True:
            await self._resume.wait()
            try:
                data = await reader.read(self.buffer_size)
            except OSError as e:
                self._report_receive_error(SocketError.from_os_error(e, 'receive'))
                continue

            if not data:
                # Peer closed its end; nothing more can arrive
                self.connected = False
                self._report_receive_error(
                    SocketError(-errno.ECONNRESET, 'Connection closed by peer'))
                return

            if not self._resume.is_set():
                await self._resume.wait()
            if self._closed:
                return

            try:
                self.emit('receive', ReceiveEvent(self, data))
            except Exception:
                logger.exception("Unhandled error in receive listener of socket %s", self.socket_id)

    def _report_receive_error(self, error: SocketError):
        self.paused = True
        self._resume.clear()
        logger.debug("Socket %s receive error: %s", self.socket_id, error)
        try:
            self.emit('receive_error', ReceiveErrorEvent(self, error))
        except Exception:
            logger.exception("Unhandled error in receive_error listener of socket %s", self.socket_id)


def _split_address(address) -> tuple:
    if not address:
        return None, None
    if isinstance(address, (tuple, list)) and len(address) >= 2:
        return address[0], address[1]
    return str(address), None
