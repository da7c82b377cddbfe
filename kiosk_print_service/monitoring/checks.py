"""
Monitoring Checks
=================

Built-in passive checks and the registry that dispatches item keys to them.
"""

import inspect
import logging
import os
import platform
import time
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, TYPE_CHECKING

from .. import __version__
from ..errors import ProtocolError, SocketError
from ..sockets import SocketChannel
from .protocol import NOT_SUPPORTED

if TYPE_CHECKING:
    from .agent import MonitoringAgent

logger = logging.getLogger(__name__)


class Check:
    """A passive check answering one item key."""

    key = ''

    def __init__(self, agent: 'MonitoringAgent'):
        self.agent = agent

    def run(self, *args: str) -> Any:
        """Return the item value; may be a coroutine."""
        raise NotImplementedError


class AgentHostnameCheck(Check):
    key = 'agent.hostname'

    def run(self):
        return self.agent.config.hostname


class AgentVersionCheck(Check):
    key = 'agent.version'

    def run(self):
        return __version__


class NetTcpPortCheck(Check):
    """1 if a TCP connection to ip:port can be opened, else 0."""

    key = 'net.tcp.port'

    timeout = 3  # seconds

    async def run(self, ip: str = '127.0.0.1', port: str = '80'):
        try:
            port_number = int(port)
        except ValueError:
            raise ProtocolError(NOT_SUPPORTED, f'Invalid port: {port}')

        socket = await SocketChannel.create()
        try:
            await socket.connect(ip, port_number, timeout=self.timeout)
            await socket.disconnect()
            return 1
        except SocketError as e:
            logger.debug("Port check %s:%s failed: %s", ip, port_number, e)
            return 0
        finally:
            await socket.close()


class SystemCpuNumCheck(Check):
    key = 'system.cpu.num'

    def run(self, type: str = 'online'):
        count = os.cpu_count()
        if count is None:
            raise ProtocolError(NOT_SUPPORTED, 'There was an error retrieving the information: CPU count unavailable')
        return count


class SystemLocaltimeCheck(Check):
    key = 'system.localtime'

    def run(self, type: str = 'utc'):
        if type == 'local':
            return datetime.now().astimezone().isoformat()
        return round(time.time())


class SystemSwOsCheck(Check):
    key = 'system.sw.os'

    def run(self):
        return platform.system().lower()


class SystemSwArchCheck(Check):
    key = 'system.sw.arch'

    def run(self):
        return platform.machine()


BUILTIN_CHECKS = (
    AgentHostnameCheck,
    AgentVersionCheck,
    NetTcpPortCheck,
    SystemCpuNumCheck,
    SystemLocaltimeCheck,
    SystemSwOsCheck,
    SystemSwArchCheck,
)


class CheckRegistry:
    """Item key -> check."""

    def __init__(self, checks: Iterable[Check] = ()):
        self._checks: Dict[str, Check] = {}
        self.register(*checks)

    def register(self, *checks: Check) -> None:
        for check in checks:
            self._checks[check.key] = check

    def get(self, key: str) -> Optional[Check]:
        return self._checks.get(key)

    def keys(self):
        return list(self._checks)

    def __contains__(self, key: str) -> bool:
        return key in self._checks

    async def run(self, key: str, args=()) -> Any:
        """
        Run the check for `key`.

        Raises:
            ProtocolError: if the key is unknown or the arguments do not fit.
        """
        check = self._checks.get(key)
        if check is None:
            raise ProtocolError(NOT_SUPPORTED, 'Unsupported agent item.')

        try:
            inspect.signature(check.run).bind(*args)
        except TypeError as e:
            raise ProtocolError(NOT_SUPPORTED, f'Invalid parameters for {key}: {e}') from e

        result = check.run(*args)
        if hasattr(result, '__await__'):
            result = await result
        return result
