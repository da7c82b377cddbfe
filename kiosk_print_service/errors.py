"""
Kiosk Print Service Errors
==========================

Exception hierarchy shared by the socket layer, the print transports
and the monitoring agent.
"""

from typing import Optional


class KioskPrintError(Exception):
    """Base class for all service errors."""

    component = ''

    def __init__(self, message: str = '', component: Optional[str] = None):
        super().__init__(message)
        if component is not None:
            self.component = component


class SocketError(KioskPrintError):
    """A TCP operation completed with a negative result code."""

    component = 'Sockets'

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        super().__init__(message or f'Network Error: {code}')

    @classmethod
    def from_os_error(cls, error: OSError, context: str = '') -> 'SocketError':
        """Build from an OSError, keeping errno as a negative result code."""
        code = -abs(error.errno) if error.errno else -1
        reason = error.strerror or str(error) or type(error).__name__
        message = f'Network Error: {code} ({reason})'
        if context:
            message = f'{message} [{context}]'
        return cls(code, message)


class ChannelClosedError(KioskPrintError):
    """A command was issued on a socket that has already been closed."""

    component = 'Sockets'

    def __init__(self, message: str = 'Socket does not exist or has already been closed.'):
        super().__init__(message)


class UsbTransferError(KioskPrintError):
    """A USB bulk transfer returned a non-zero result code."""

    component = 'USB'

    def __init__(self, code: int):
        self.code = code
        super().__init__(f'USB transfer returned non-zero result code {code}')


class DeviceNotFoundError(KioskPrintError):
    """No matching device, printer interface or bulk endpoint."""

    component = 'USB'


class UnsupportedTransportError(KioskPrintError):
    """No registered transport accepts the job's connection kind."""

    component = 'Printing'

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"No print transport supports connection type '{kind}'")


class LabelFetchError(KioskPrintError):
    """A label template could not be downloaded."""

    component = 'Labels'


class ProtocolError(KioskPrintError):
    """A monitoring request could not be answered."""

    component = 'Monitoring Agent'

    def __init__(self, kind: str, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)

    def to_wire(self) -> str:
        """Render as the plain `<KIND>\\0<message>` error line."""
        return f'{self.kind}\0{self.message}\n'


class AgentError(KioskPrintError):
    """The monitoring agent failed in a way that disables it."""

    component = 'Monitoring Agent'

    def __init__(self, message: str, caused_by: Optional[BaseException] = None):
        super().__init__(message)
        self.caused_by = caused_by
