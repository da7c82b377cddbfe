"""
Socket Server
=============

A listening TCP socket that wraps each accepted connection as a
SocketChannel and keeps track of the live ones.

Events:
    accept         ClientEvent; a listener returning False rejects the client
    accept_error   ServerErrorEvent; the server keeps listening
    receive        ClientDataEvent, fanned out from tracked clients
    receive_error  ClientErrorEvent; the client is closed unless a listener returns False
    error          ServerErrorEvent, for failures while setting up a client
"""

import asyncio
import errno
import itertools
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Set, Tuple

from .channel import SocketChannel, SocketInfo, ReceiveEvent, ReceiveErrorEvent, CloseEvent
from .emitter import EventEmitter
from ..errors import SocketError, ChannelClosedError

logger = logging.getLogger(__name__)

_server_ids = itertools.count(1)


@dataclass
class ServerErrorEvent:
    server: 'SocketServer'
    error: Exception


@dataclass
class ClientEvent:
    server: 'SocketServer'
    client: SocketChannel


@dataclass
class ClientDataEvent:
    server: 'SocketServer'
    client: SocketChannel
    data: bytes


@dataclass
class ClientErrorEvent:
    server: 'SocketServer'
    client: SocketChannel
    error: SocketError


class SocketServer(EventEmitter):
    """A TCP server socket."""

    def __init__(self):
        super().__init__()
        self.socket_id = next(_server_ids)
        self._server: Optional[asyncio.AbstractServer] = None
        self._clients: Dict[int, SocketChannel] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @classmethod
    async def create(cls) -> 'SocketServer':
        return cls()

    @property
    def clients(self) -> Tuple[SocketChannel, ...]:
        """Accepted clients that are still open."""
        return tuple(self._clients.values())

    @property
    def listening(self) -> bool:
        return self._server is not None

    async def listen(self, address: str, port: int, backlog: Optional[int] = None) -> int:
        """
        Start accepting connections.

        Raises:
            SocketError: if the address/port cannot be bound.
        """
        if self._closed:
            raise ChannelClosedError()
        if self._server is not None:
            raise SocketError(-errno.EISCONN, f'Server {self.socket_id} is already listening')

        kwargs = {}
        if backlog is not None:
            kwargs['backlog'] = backlog

        try:
            self._server = await asyncio.start_server(self._handle_accept, address, port, **kwargs)
        except OSError as e:
            raise SocketError.from_os_error(e, f'{address}:{port}') from e

        info = self.info()
        logger.info("Server %s listening on %s:%s", self.socket_id, info.local_address, info.local_port)
        return 0

    async def close(self) -> None:
        """
        Stop accepting and detach from every tracked client.

        Accepted clients are left open; they belong to whoever holds them.
        """
        if self._closed:
            return
        self._closed = True

        for client in self._clients.values():
            self._detach_client(client)
        self._clients.clear()
        self.remove_all_listeners()

        server, self._server = self._server, None
        if server is not None:
            # Server.wait_closed() also waits for accepted connections,
            # which outlive the server
            server.close()
            logger.info("Server %s closed", self.socket_id)

    async def get_info(self) -> SocketInfo:
        if self._closed:
            raise ChannelClosedError()
        return self.info()

    def info(self) -> SocketInfo:
        address = port = None
        if self._server is not None and self._server.sockets:
            sockname = self._server.sockets[0].getsockname()
            address, port = sockname[0], sockname[1]
        return SocketInfo(
            socket_id=self.socket_id,
            connected=self._server is not None,
            local_address=address,
            local_port=port,
        )

    # =========================================================================
    # Accept path
    # =========================================================================

    async def _handle_accept(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        if self._closed:
            writer.close()
            return

        try:
            client = SocketChannel.from_streams(reader, writer, paused=True)
        except OSError as e:
            writer.close()
            self.emit('accept_error', ServerErrorEvent(self, SocketError.from_os_error(e, 'accept')))
            return

        try:
            if self.emit('accept', ClientEvent(self, client)) is False:
                logger.debug("Server %s rejected client %s (%s)",
                             self.socket_id, client.socket_id, client.peer_address)
                await client.close()
                return

            self._clients[client.socket_id] = client
            client.on('receive', self._handle_client_receive)
            client.on('receive_error', self._handle_client_receive_error)
            client.on('close', self._handle_client_close)
            await client.set_paused(False)
        except Exception as e:
            logger.exception("Server %s failed to set up client %s", self.socket_id, client.socket_id)
            self._clients.pop(client.socket_id, None)
            await client.close()
            self.emit('error', ServerErrorEvent(self, e))

    def _detach_client(self, client: SocketChannel):
        client.off('receive', self._handle_client_receive)
        client.off('receive_error', self._handle_client_receive_error)
        client.off('close', self._handle_client_close)

    def _handle_client_receive(self, event: ReceiveEvent):
        self.emit('receive', ClientDataEvent(self, event.channel, event.data))

    def _handle_client_receive_error(self, event: ReceiveErrorEvent):
        result = self.emit('receive_error', ClientErrorEvent(self, event.channel, event.error))

        # Unless a listener took responsibility, drop the connection
        if result is not False:
            self._spawn(event.channel.close())

    def _handle_client_close(self, event: CloseEvent):
        self._clients.pop(event.socket_id, None)

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Server %s background task failed: %s", self.socket_id, task.exception())
            self.emit('error', ServerErrorEvent(self, task.exception()))
