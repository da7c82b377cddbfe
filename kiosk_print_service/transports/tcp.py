"""
TCP Transport
=============

Raw TCP printing (port 9100) for ZPL network printers.
"""

import logging
from typing import Optional

from .base import BaseTransport
from ..config import ZPL_PORT, DEFAULT_TIMEOUT
from ..errors import KioskPrintError
from ..models import PrintJob
from ..sockets import SocketChannel

logger = logging.getLogger(__name__)


class TcpTransport(BaseTransport):
    """Prints to network printers over a plain TCP connection."""

    kind = 'tcp'

    def __init__(self, default_port: int = ZPL_PORT, connect_timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.default_port = default_port
        self.connect_timeout = connect_timeout

    async def print(self, job: PrintJob) -> None:
        host, port = job.target.split_host_port(self.default_port)
        if not host:
            raise KioskPrintError("Printer host not configured", component="Printing")

        # Create a new TCP socket
        socket = await SocketChannel.create()

        try:
            await socket.connect(host, port, timeout=self.connect_timeout)

            try:
                for document in job.documents:
                    await socket.send(document.data)
            finally:
                await socket.disconnect()

        finally:
            await socket.close()

        logger.info("Sent %d document(s) to %s:%s", len(job.documents), host, port)
