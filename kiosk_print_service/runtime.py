"""
Service Runtime
===============

Runs the asyncio event loop that owns all socket and USB I/O in a
background thread, and lets the (threaded) HTTP layer submit work to it.
"""

import asyncio
import logging
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Awaitable, List, Optional

from .dispatcher import PrintDispatcher
from .labels import LabelCache
from .models import LabelDescriptor, Printer, PrintJob
from .monitoring import MonitoringAgent, AgentConfig
from .settings import KioskSettings
from .transports import default_transports

logger = logging.getLogger(__name__)


class ServiceRuntime:
    """Event loop thread."""

    def __init__(self):
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name='kiosk-print-loop', daemon=True)
        self._thread.start()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_forever()
        finally:
            self.loop.close()

    def run(self, coro: Awaitable, timeout: Optional[float] = None) -> Any:
        """
        Run a coroutine on the loop and wait for its result.

        Raises:
            concurrent.futures.TimeoutError: if it does not finish in time; the
                coroutine is cancelled so no work continues after the caller
                has given up.
        """
        if not self.running:
            raise RuntimeError('Service runtime is not running')
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning("Cancelled work still running after %ss", timeout)
            raise

    def stop(self):
        if not self.running:
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join()
        self._thread = None


class KioskService:
    """Wires settings, dispatcher and monitoring agent to one runtime."""

    def __init__(self, settings: KioskSettings, dispatcher: PrintDispatcher,
                 agent: Optional[MonitoringAgent] = None,
                 runtime: Optional[ServiceRuntime] = None):
        self.settings = settings
        self.dispatcher = dispatcher
        self.agent = agent
        self.runtime = runtime or ServiceRuntime()

    @classmethod
    def from_config(cls) -> 'KioskService':
        settings = KioskSettings.from_config()
        dispatcher = PrintDispatcher(
            settings=settings,
            transports=default_transports(),
            cache=LabelCache('label-data'),
        )
        return cls(settings, dispatcher, MonitoringAgent(AgentConfig.from_config()))

    def start(self):
        self.runtime.start()
        if self.agent is not None:
            state = self.runtime.run(self.agent.start())
            logger.info("Monitoring agent state: %s", state.value)

    def stop(self):
        if self.agent is not None and self.runtime.running:
            self.runtime.run(self.agent.stop())
        self.runtime.stop()

    def print_labels(self, labels: List[LabelDescriptor], timeout: Optional[float] = None) -> List[PrintJob]:
        return self.runtime.run(self.dispatcher.print_labels(labels), timeout)

    def discover_devices(self, timeout: Optional[float] = None) -> List[Printer]:
        return self.runtime.run(self.dispatcher.discover_devices(), timeout)
