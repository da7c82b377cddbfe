import pytest

from kiosk_print_service.dispatcher import PrintDispatcher
from kiosk_print_service.errors import KioskPrintError, UnsupportedTransportError
from kiosk_print_service.labels import LabelCache, MemoryStore
from kiosk_print_service.models import ConnectionTarget, LabelDescriptor, Printer
from kiosk_print_service.settings import KioskSettings
from kiosk_print_service.transports import BaseTransport

TEMPLATES = {
    'https://labels/name.zpl': '^XA^FT10,10^FDNAME^FS^XZ',
    'https://labels/room.zpl': '^XA^FT10,10^FDROOM^FS^XZ',
}


class FakeTransport(BaseTransport):
    def __init__(self, kind, fail=False, printers=()):
        self.kind = kind
        self.fail = fail
        self.printers = list(printers)
        self.printed = []

    async def print(self, job):
        if self.fail:
            raise KioskPrintError('printer on fire')
        self.printed.append(job)

    async def discover_devices(self):
        return self.printers


class FakeFetcher:
    def __init__(self):
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        return TEMPLATES[url]


def label(key='name', url='https://labels/name.zpl', address='10.0.0.5', **fields):
    return LabelDescriptor(label_key=key, label_file=url, printer_address=address,
                           merge_fields=fields or {'NAME': 'Ada'})


def make_dispatcher(settings=None, transports=None, fetcher=None):
    return PrintDispatcher(
        settings=settings or KioskSettings(),
        transports=transports if transports is not None else [FakeTransport('tcp'), FakeTransport('usb')],
        cache=LabelCache('test', MemoryStore(), clock=lambda: 0),
        fetcher=fetcher or FakeFetcher(),
        clock=lambda: 0,
    )


@pytest.mark.asyncio
async def test_labels_grouped_by_destination_in_order():
    dispatcher = make_dispatcher()

    jobs = await dispatcher.get_and_merge_labels([
        label(address='10.0.0.5', NAME='Ada'),
        label(key='room', url='https://labels/room.zpl', address='10.0.0.6', ROOM='101'),
        label(address='10.0.0.5', NAME='Grace'),
    ])

    assert [job.target for job in jobs] == [
        ConnectionTarget('tcp', '10.0.0.5'),
        ConnectionTarget('tcp', '10.0.0.6'),
    ]
    assert [d.data for d in jobs[0].documents] == [
        b'^XA^FT10,10^FDAda^FS^XZ',
        b'^XA^FT10,10^FDGrace^FS^XZ',
    ]
    assert jobs[0].documents[0].name == 'name'
    assert jobs[1].documents[0].data == b'^XA^FT10,10^FD101^FS^XZ'


@pytest.mark.asyncio
async def test_override_wins_over_label_address():
    dispatcher = make_dispatcher(settings=KioskSettings(printer_override='usb://SN-1'))

    jobs = await dispatcher.get_and_merge_labels([
        label(address='10.0.0.5'),
        label(address='10.0.0.6'),
    ])

    assert len(jobs) == 1
    assert jobs[0].target == ConnectionTarget('usb', 'SN-1')
    assert len(jobs[0].documents) == 2
    assert isinstance(jobs[0].documents, tuple)


@pytest.mark.asyncio
async def test_templates_come_from_cache():
    fetcher = FakeFetcher()
    dispatcher = make_dispatcher(fetcher=fetcher)

    await dispatcher.get_and_merge_labels([label(), label(), label()])

    assert fetcher.urls == ['https://labels/name.zpl']


@pytest.mark.asyncio
async def test_caching_disabled_bypasses_cache():
    fetcher = FakeFetcher()
    dispatcher = make_dispatcher(settings=KioskSettings(enable_label_caching=False), fetcher=fetcher)

    await dispatcher.get_and_merge_labels([label(), label()])

    assert fetcher.urls == ['https://labels/name.zpl', 'https://labels/name.zpl']
    assert not dispatcher.cache.is_updating('name')


@pytest.mark.asyncio
async def test_jobs_routed_to_matching_transport():
    tcp, usb = FakeTransport('tcp'), FakeTransport('usb')
    dispatcher = make_dispatcher(transports=[tcp, usb])

    jobs = await dispatcher.print_labels([
        label(address='10.0.0.5'),
        label(address='usb://SN-1'),
    ])

    assert tcp.printed == [jobs[0]]
    assert usb.printed == [jobs[1]]


@pytest.mark.asyncio
async def test_first_accepting_transport_wins():
    first, second = FakeTransport('tcp'), FakeTransport('tcp')
    dispatcher = make_dispatcher(transports=[first, second])

    await dispatcher.print_labels([label()])

    assert len(first.printed) == 1
    assert second.printed == []


@pytest.mark.asyncio
async def test_unsupported_kind_fails_whole_batch():
    tcp = FakeTransport('tcp')
    dispatcher = make_dispatcher(transports=[tcp, FakeTransport('usb')])

    with pytest.raises(UnsupportedTransportError) as exc_info:
        await dispatcher.print_labels([
            label(address='10.0.0.5'),
            label(address='serial:///dev/ttyS0'),
        ])

    assert exc_info.value.kind == 'serial'
    assert 'serial' in str(exc_info.value)
    assert tcp.printed == []


@pytest.mark.asyncio
async def test_first_failure_propagates():
    broken = FakeTransport('tcp', fail=True)
    usb = FakeTransport('usb')
    dispatcher = make_dispatcher(transports=[broken, usb])

    with pytest.raises(KioskPrintError, match='printer on fire'):
        await dispatcher.print_labels([
            label(address='10.0.0.5'),
            label(address='usb://SN-1'),
        ])

    assert usb.printed == []


@pytest.mark.asyncio
async def test_discover_collects_from_all_transports():
    class BrokenDiscovery(FakeTransport):
        async def discover_devices(self):
            raise ValueError('no libusb')

    printer = Printer(kind='usb', address='SN-1', name='ZD420')
    dispatcher = make_dispatcher(transports=[
        FakeTransport('tcp'),
        BrokenDiscovery('serial'),
        FakeTransport('usb', printers=[printer]),
    ])

    assert await dispatcher.discover_devices() == [printer]
