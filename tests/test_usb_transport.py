import errno

import pytest

from kiosk_print_service.errors import DeviceNotFoundError, UsbTransferError
from kiosk_print_service.models import ConnectionTarget, Document, PrintJob
from kiosk_print_service.transports import UsbTransport
from kiosk_print_service.transports.usb_backend import (
    UsbConnection, UsbDevice, UsbEndpoint, UsbInterface,
)

BULK_OUT = UsbEndpoint(address=0x01, direction='out', type='bulk')
BULK_IN = UsbEndpoint(address=0x82, direction='in', type='bulk')
PRINTER_INTERFACE = UsbInterface(interface_number=0, interface_class=7, endpoints=(BULK_IN, BULK_OUT))


class FakeUsbBackend:
    """Records every call; set `fail_on` to make one of them raise."""

    def __init__(self, devices=None, interfaces=None, transfer_results=None, fail_on=None):
        if devices is None:
            devices = [UsbDevice(vendor_id=0x0a5f, product_id=0x0164, serial_number='SN-1', product_name='ZD420')]
        self.devices = devices
        self.interfaces = interfaces if interfaces is not None else [PRINTER_INTERFACE]
        self.transfer_results = list(transfer_results or [])
        self.fail_on = fail_on
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_on == name:
            raise RuntimeError(f'{name} failed')

    def get_devices(self, interface_class):
        self._record('get_devices', interface_class)
        return self.devices

    def open_device(self, device):
        self._record('open_device', device.serial_number)
        return UsbConnection(device=device)

    def list_interfaces(self, connection):
        self._record('list_interfaces')
        return self.interfaces

    def claim_interface(self, connection, interface_number):
        self._record('claim_interface', interface_number)

    def bulk_transfer(self, connection, endpoint, data, timeout):
        self._record('bulk_transfer', endpoint, data, timeout)
        return self.transfer_results.pop(0) if self.transfer_results else 0

    def release_interface(self, connection, interface_number):
        self._record('release_interface', interface_number)

    def close_device(self, connection):
        self._record('close_device')

    def names(self):
        return [call[0] for call in self.calls]


def usb_job(serial='SN-1', *payloads):
    payloads = payloads or (b'^XA1^XZ',)
    return PrintJob(
        target=ConnectionTarget('usb', serial),
        documents=[Document(f'doc{i}', data) for i, data in enumerate(payloads)],
    )


def test_supports_only_usb():
    transport = UsbTransport(backend=FakeUsbBackend())

    assert transport.supports_connection(ConnectionTarget('usb', 'SN-1'))
    assert not transport.supports_connection(ConnectionTarget('tcp', '10.0.0.5'))


@pytest.mark.asyncio
async def test_documents_transferred_in_order():
    backend = FakeUsbBackend()

    await UsbTransport(backend=backend).print(usb_job('SN-1', b'one', b'two'))

    assert backend.calls == [
        ('get_devices', 7),
        ('open_device', 'SN-1'),
        ('list_interfaces',),
        ('claim_interface', 0),
        ('bulk_transfer', 0x01, b'one', 10000),
        ('bulk_transfer', 0x01, b'two', 10000),
        ('release_interface', 0),
        ('close_device',),
    ]


@pytest.mark.asyncio
async def test_no_devices():
    backend = FakeUsbBackend(devices=[])

    with pytest.raises(DeviceNotFoundError, match='No printer devices found'):
        await UsbTransport(backend=backend).print(usb_job())

    assert 'open_device' not in backend.names()


@pytest.mark.asyncio
async def test_serial_not_attached():
    backend = FakeUsbBackend()

    with pytest.raises(DeviceNotFoundError, match='SN-404'):
        await UsbTransport(backend=backend).print(usb_job('SN-404'))

    assert 'open_device' not in backend.names()


@pytest.mark.asyncio
async def test_no_printer_interface_closes_device():
    storage = UsbInterface(interface_number=0, interface_class=8, endpoints=(BULK_OUT,))
    backend = FakeUsbBackend(interfaces=[storage])

    with pytest.raises(DeviceNotFoundError, match='printer interface'):
        await UsbTransport(backend=backend).print(usb_job())

    assert backend.names()[-1] == 'close_device'
    assert 'claim_interface' not in backend.names()


@pytest.mark.asyncio
async def test_no_bulk_out_endpoint_closes_device():
    interface = UsbInterface(interface_number=0, interface_class=7, endpoints=(BULK_IN,))
    backend = FakeUsbBackend(interfaces=[interface])

    with pytest.raises(DeviceNotFoundError, match='bulk out endpoint'):
        await UsbTransport(backend=backend).print(usb_job())

    assert backend.names().count('close_device') == 1
    assert 'claim_interface' not in backend.names()


@pytest.mark.asyncio
async def test_non_zero_transfer_result():
    backend = FakeUsbBackend(transfer_results=[0, errno.ETIMEDOUT])

    with pytest.raises(UsbTransferError) as exc_info:
        await UsbTransport(backend=backend).print(usb_job('SN-1', b'one', b'two', b'three'))

    assert exc_info.value.code == errno.ETIMEDOUT
    assert backend.names().count('bulk_transfer') == 2
    assert backend.names()[-2:] == ['release_interface', 'close_device']


@pytest.mark.parametrize('failing, expect_release', [
    ('list_interfaces', False),
    ('claim_interface', False),
    ('bulk_transfer', True),
    ('release_interface', True),
])
@pytest.mark.asyncio
async def test_cleanup_runs_once_in_order(failing, expect_release):
    backend = FakeUsbBackend(fail_on=failing)

    with pytest.raises(RuntimeError, match=f'{failing} failed'):
        await UsbTransport(backend=backend).print(usb_job('SN-1', b'one', b'two'))

    names = backend.names()
    assert names.count('close_device') == 1
    assert names[-1] == 'close_device'
    assert names.count('release_interface') == (1 if expect_release else 0)
    if expect_release:
        assert names.index('release_interface') < names.index('close_device')


@pytest.mark.asyncio
async def test_close_failure_propagates_after_release():
    backend = FakeUsbBackend(fail_on='close_device')

    with pytest.raises(RuntimeError, match='close_device failed'):
        await UsbTransport(backend=backend).print(usb_job())

    assert backend.names()[-2:] == ['release_interface', 'close_device']


@pytest.mark.asyncio
async def test_discover_devices():
    backend = FakeUsbBackend(devices=[
        UsbDevice(vendor_id=0x0a5f, product_id=0x0164, serial_number='SN-1',
                  manufacturer_name='Zebra', product_name='ZD420'),
        UsbDevice(vendor_id=0x1234, product_id=0x0001),
    ])

    printers = await UsbTransport(backend=backend).discover_devices()

    assert [p.address for p in printers] == ['SN-1', '']
    assert printers[0].name == 'ZD420'
    assert printers[0].manufacturer == 'Zebra'
    assert printers[1].name == '1234:0001'
