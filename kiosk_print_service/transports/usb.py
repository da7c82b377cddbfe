"""
USB Transport
=============

Prints to USB printers (printer class 7) with bulk OUT transfers.

The claimed interface is always released and the device is always
closed, in that order, whatever happens during the transfers.
"""

import asyncio
import logging
from typing import List, Optional

from .base import BaseTransport
from .usb_backend import PyUsbBackend, UsbDevice
from ..config import USB_PRINTER_CLASS, USB_TRANSFER_TIMEOUT_MS
from ..errors import DeviceNotFoundError, UsbTransferError
from ..models import Printer, PrintJob

logger = logging.getLogger(__name__)


def usb_device_to_printer(device: UsbDevice) -> Printer:
    return Printer(
        kind='usb',
        address=device.serial_number or '',
        name=device.product_name or f'{device.vendor_id:04x}:{device.product_id:04x}',
        manufacturer=device.manufacturer_name,
        model=device.product_name,
        serial=device.serial_number,
    )


class UsbTransport(BaseTransport):
    """Prints to a USB printer identified by its serial number."""

    kind = 'usb'

    def __init__(self, backend: Optional[PyUsbBackend] = None,
                 transfer_timeout: int = USB_TRANSFER_TIMEOUT_MS,
                 interface_class: int = USB_PRINTER_CLASS):
        self.backend = backend or PyUsbBackend()
        self.transfer_timeout = transfer_timeout
        self.interface_class = interface_class

    async def _call(self, func, *args):
        # PyUSB blocks; keep the event loop free
        return await asyncio.to_thread(func, *args)

    async def discover_devices(self) -> List[Printer]:
        devices = await self._call(self.backend.get_devices, self.interface_class)
        return [usb_device_to_printer(d) for d in devices]

    async def print(self, job: PrintJob) -> None:
        serial = job.target.address

        # Get all connected printers
        printers = await self._call(self.backend.get_devices, self.interface_class)
        if not printers:
            raise DeviceNotFoundError("No printer devices found. Is your printer plugged in and turned on?")

        # Find the one to print to
        device = next((p for p in printers if p.serial_number == serial), None)
        if device is None:
            raise DeviceNotFoundError(f"Printer {serial} could not be found. Is it plugged in and turned on?")

        connection = await self._call(self.backend.open_device, device)

        try:
            interfaces = await self._call(self.backend.list_interfaces, connection)
            interface = next((i for i in interfaces if i.interface_class == self.interface_class), None)
            if interface is None:
                raise DeviceNotFoundError("USB device does not have a printer interface")

            endpoint = next(
                (e for e in interface.endpoints if e.direction == 'out' and e.type == 'bulk'),
                None,
            )
            if endpoint is None:
                raise DeviceNotFoundError("The USB device's printer interface does not have a bulk out endpoint")

            await self._call(self.backend.claim_interface, connection, interface.interface_number)

            try:
                for document in job.documents:
                    result = await self._call(
                        self.backend.bulk_transfer,
                        connection,
                        endpoint.address,
                        document.data,
                        self.transfer_timeout,
                    )
                    if result != 0:
                        raise UsbTransferError(result)
            finally:
                await self._call(self.backend.release_interface, connection, interface.interface_number)

        finally:
            await self._call(self.backend.close_device, connection)

        logger.info("Sent %d document(s) to USB printer %s", len(job.documents), serial)
