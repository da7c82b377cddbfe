"""
USB Backend
===========

Thin blocking wrapper around PyUSB that exposes the handful of
operations the USB transport needs. Each call is expected to run in a
worker thread.
"""

import errno
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set, Tuple

import usb.core
import usb.util

logger = logging.getLogger(__name__)

_ENDPOINT_TYPES = {
    usb.util.ENDPOINT_TYPE_CTRL: 'control',
    usb.util.ENDPOINT_TYPE_ISO: 'isochronous',
    usb.util.ENDPOINT_TYPE_BULK: 'bulk',
    usb.util.ENDPOINT_TYPE_INTR: 'interrupt',
}


@dataclass(frozen=True)
class UsbEndpoint:
    address: int
    direction: str  # in, out
    type: str  # control, isochronous, bulk, interrupt


@dataclass(frozen=True)
class UsbInterface:
    interface_number: int
    interface_class: int
    endpoints: Tuple[UsbEndpoint, ...] = ()


@dataclass
class UsbDevice:
    """An attached device as seen during enumeration."""

    vendor_id: int
    product_id: int
    serial_number: Optional[str] = None
    manufacturer_name: Optional[str] = None
    product_name: Optional[str] = None
    handle: Any = None


@dataclass
class UsbConnection:
    """An opened device."""

    device: UsbDevice
    detached_interfaces: Set[int] = field(default_factory=set)


def _read_string(dev, index: int) -> Optional[str]:
    if not index:
        return None
    try:
        return usb.util.get_string(dev, index)
    except (usb.core.USBError, ValueError, NotImplementedError) as e:
        # Usually a permissions problem; the device is still listed
        logger.debug("Cannot read string descriptor %s of %04x:%04x: %s",
                     index, dev.idVendor, dev.idProduct, e)
        return None


class PyUsbBackend:
    """USB access through PyUSB (libusb)."""

    def get_devices(self, interface_class: int) -> List[UsbDevice]:
        """List attached devices having an interface of the given class."""

        def has_interface_class(dev) -> bool:
            for cfg in dev:
                if usb.util.find_descriptor(cfg, bInterfaceClass=interface_class) is not None:
                    return True
            return False

        devices = []
        for dev in usb.core.find(find_all=True, custom_match=has_interface_class):
            devices.append(UsbDevice(
                vendor_id=dev.idVendor,
                product_id=dev.idProduct,
                serial_number=_read_string(dev, dev.iSerialNumber),
                manufacturer_name=_read_string(dev, dev.iManufacturer),
                product_name=_read_string(dev, dev.iProduct),
                handle=dev,
            ))
        return devices

    def open_device(self, device: UsbDevice) -> UsbConnection:
        dev = device.handle
        try:
            dev.get_active_configuration()
        except usb.core.USBError:
            # Not configured yet
            dev.set_configuration()
        return UsbConnection(device=device)

    def list_interfaces(self, connection: UsbConnection) -> List[UsbInterface]:
        cfg = connection.device.handle.get_active_configuration()
        interfaces = []
        for intf in cfg:
            endpoints = tuple(
                UsbEndpoint(
                    address=ep.bEndpointAddress,
                    direction='out' if usb.util.endpoint_direction(ep.bEndpointAddress) == usb.util.ENDPOINT_OUT else 'in',
                    type=_ENDPOINT_TYPES.get(usb.util.endpoint_type(ep.bmAttributes), 'unknown'),
                )
                for ep in intf
            )
            interfaces.append(UsbInterface(
                interface_number=intf.bInterfaceNumber,
                interface_class=intf.bInterfaceClass,
                endpoints=endpoints,
            ))
        return interfaces

    def claim_interface(self, connection: UsbConnection, interface_number: int) -> None:
        dev = connection.device.handle

        # The usblp kernel driver holds printers on Linux
        if sys.platform != 'win32':
            try:
                if dev.is_kernel_driver_active(interface_number):
                    dev.detach_kernel_driver(interface_number)
                    connection.detached_interfaces.add(interface_number)
            except NotImplementedError:
                pass

        usb.util.claim_interface(dev, interface_number)

    def bulk_transfer(self, connection: UsbConnection, endpoint: int, data: bytes, timeout: int) -> int:
        """Write data to a bulk OUT endpoint. Returns 0 on success, else a result code."""
        try:
            written = connection.device.handle.write(endpoint, data, timeout)
        except usb.core.USBTimeoutError:
            return errno.ETIMEDOUT
        except usb.core.USBError as e:
            logger.warning("USB bulk transfer failed: %s", e)
            return e.errno or errno.EIO

        if written != len(data):
            logger.warning("Short USB write: %d of %d bytes", written, len(data))
            return errno.EIO
        return 0

    def release_interface(self, connection: UsbConnection, interface_number: int) -> None:
        dev = connection.device.handle
        usb.util.release_interface(dev, interface_number)

        if interface_number in connection.detached_interfaces:
            connection.detached_interfaces.discard(interface_number)
            dev.attach_kernel_driver(interface_number)

    def close_device(self, connection: UsbConnection) -> None:
        usb.util.dispose_resources(connection.device.handle)
