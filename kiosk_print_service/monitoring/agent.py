"""
Monitoring Agent
================

A small Zabbix-compatible agent answering passive checks.

The agent listens on a TCP port, admits only the configured passive
servers, and answers each newline-terminated item key with a framed
JSON value, or with a `<KIND>\\0<message>` line when the item cannot be
answered. A failing request never takes the listener down.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Set, Tuple, Type, Union

from ..config import AGENT_HOSTNAME, AGENT_LISTEN_ADDRESS, AGENT_LISTEN_PORT, AGENT_PASSIVE_SERVERS
from ..errors import AgentError, ProtocolError, SocketError
from ..sockets import (
    EventEmitter, SocketChannel, SocketServer,
    ClientEvent, ClientDataEvent, ClientErrorEvent, ServerErrorEvent,
)
from .checks import BUILTIN_CHECKS, Check, CheckRegistry
from .protocol import ERROR, encode_value, parse_request

logger = logging.getLogger(__name__)


class AgentState(enum.Enum):
    IDLE = 'idle'
    LISTENING = 'listening'
    FAILED = 'failed'


@dataclass(frozen=True)
class AgentConfig:
    """Agent configuration, fixed for the agent's lifetime."""

    hostname: str
    listen_address: str = '0.0.0.0'
    listen_port: int = 10050

    # Servers/proxies allowed to request passive checks
    passive_servers: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        servers = self.passive_servers
        if isinstance(servers, str):
            servers = (servers,)
        object.__setattr__(self, 'passive_servers', tuple(servers or ()))

    @classmethod
    def from_config(cls) -> 'AgentConfig':
        return cls(
            hostname=AGENT_HOSTNAME,
            listen_address=AGENT_LISTEN_ADDRESS,
            listen_port=AGENT_LISTEN_PORT,
            passive_servers=tuple(AGENT_PASSIVE_SERVERS),
        )


def check_address_filter(address: str, filters: Union[str, Iterable[str]]) -> bool:
    """True if the address matches any configured entry."""
    if isinstance(filters, str):
        filters = (filters,)
    return any(match_address(address, f) for f in filters)


def match_address(address: str, filter: str) -> bool:
    # Exact match only; ranges and CIDR notation are not interpreted
    return address == filter


class MonitoringAgent(EventEmitter):
    """
    Passive-check agent.

    Events:
        error  AgentError, emitted once if the listener cannot start
    """

    def __init__(self, config: AgentConfig, checks: Iterable[Type[Check]] = BUILTIN_CHECKS):
        super().__init__()
        self.config = config
        self.state = AgentState.IDLE
        self.registry = CheckRegistry(check_type(self) for check_type in checks)
        self.server: Optional[SocketServer] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def port(self) -> Optional[int]:
        """Bound port while listening."""
        if self.server is None:
            return None
        return self.server.info().local_port

    async def start(self) -> AgentState:
        """Start listening for passive checks."""
        if self.state is not AgentState.IDLE:
            return self.state

        if not self.config.passive_servers:
            logger.info("No passive servers configured, monitoring agent disabled")
            return self.state

        server = SocketServer()
        try:
            await server.listen(self.config.listen_address, self.config.listen_port)
        except SocketError as e:
            await server.close()
            self.state = AgentState.FAILED
            self._emit_error("Failed to start TCP server for passive checks.", e)
            return self.state

        server.on('accept', self._handle_accept)
        server.on('accept_error', self._handle_accept_error)
        server.on('receive', self._handle_receive)
        server.on('receive_error', self._handle_receive_error)
        server.on('error', self._handle_server_error)

        self.server = server
        self.state = AgentState.LISTENING
        logger.info("Monitoring agent %s listening on %s:%s",
                    self.config.hostname, self.config.listen_address, self.port)
        return self.state

    async def stop(self) -> None:
        """Stop listening and drop connected clients."""
        server, self.server = self.server, None
        if server is not None:
            clients = server.clients
            await server.close()
            for client in clients:
                await client.close()

        for task in list(self._tasks):
            task.cancel()

        if self.state is AgentState.LISTENING:
            self.state = AgentState.IDLE

    # =========================================================================
    # Server events
    # =========================================================================

    def _handle_accept(self, event: ClientEvent) -> bool:
        peer = event.client.peer_address
        if peer and check_address_filter(peer, self.config.passive_servers):
            logger.debug("Accepted passive check connection from %s", peer)
            return True

        logger.warning("Rejected passive check connection from %s", peer)
        return False

    def _handle_accept_error(self, event: ServerErrorEvent):
        logger.warning("Accept error: %s", event.error)

    def _handle_receive(self, event: ClientDataEvent):
        task = asyncio.get_running_loop().create_task(self._respond(event.client, event.data))
        self._tasks.add(task)
        task.add_done_callback(self._response_done)

    def _handle_receive_error(self, event: ClientErrorEvent):
        logger.debug("Receive error from %s: %s", event.client.peer_address, event.error)

    def _handle_server_error(self, event: ServerErrorEvent):
        logger.error("Monitoring server error: %s", event.error)

    def _response_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Error sending response: %s", task.exception())

    # =========================================================================
    # Requests
    # =========================================================================

    async def _respond(self, client: SocketChannel, data: bytes):
        requests = data.decode('utf-8', errors='replace').split('\n')

        for request in requests:
            request = request.strip()
            if not request:
                continue

            response = await self.handle_request(request)
            if response is not None and client.connected:
                await client.send(response)

    async def handle_request(self, request: str) -> Optional[bytes]:
        """
        Answer one request line.

        Returns:
            The bytes to send back, or None when the check produced no value.
        """
        key, args = parse_request(request)
        try:
            result = await self.registry.run(key, args)
        except ProtocolError as e:
            logger.debug("Request %r failed: %s %s", request, e.kind, e.message)
            return e.to_wire().encode('utf-8')
        except Exception as e:
            logger.exception("Check %s failed", key)
            return ProtocolError(ERROR, str(e)).to_wire().encode('utf-8')

        if result is None:
            return None
        return encode_value(result)

    def _emit_error(self, message: str, caused_by: Optional[BaseException] = None):
        logger.error("%s %s", message, caused_by or '')
        self.emit('error', AgentError(message, caused_by))
