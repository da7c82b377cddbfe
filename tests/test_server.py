import asyncio
import errno

import pytest

from kiosk_print_service.errors import ChannelClosedError, SocketError
from kiosk_print_service.sockets import SocketServer


async def listening_server():
    server = SocketServer()
    await server.listen('127.0.0.1', 0)
    return server, server.info().local_port


@pytest.mark.asyncio
async def test_listen_reports_bound_port():
    server, port = await listening_server()
    try:
        assert server.listening
        assert port > 0
        info = await server.get_info()
        assert info.local_address == '127.0.0.1'
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_listen_twice_fails():
    server, port = await listening_server()
    try:
        with pytest.raises(SocketError) as exc_info:
            await server.listen('127.0.0.1', 0)
        assert exc_info.value.code == -errno.EISCONN
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_listen_on_busy_port_fails():
    server, port = await listening_server()
    other = SocketServer()
    try:
        with pytest.raises(SocketError) as exc_info:
            await other.listen('127.0.0.1', port)
        assert exc_info.value.code < 0
        assert not other.listening
    finally:
        await other.close()
        await server.close()


@pytest.mark.asyncio
async def test_accepted_client_data_fans_out(wait_until):
    server, port = await listening_server()
    accepted = []
    received = asyncio.Queue()

    server.on('accept', lambda event: accepted.append(event.client))
    server.on('receive', lambda event: received.put_nowait((event.client, event.data)))

    reader, writer = await asyncio.open_connection('127.0.0.1', port)
    try:
        writer.write(b'ping')
        await writer.drain()

        client, data = await asyncio.wait_for(received.get(), 2)
        assert data == b'ping'
        assert accepted == [client]
        assert server.clients == (client,)
        assert client.peer_address == '127.0.0.1'
        assert not client.paused
    finally:
        writer.close()
        for client in server.clients:
            await client.close()
        await server.close()


@pytest.mark.asyncio
async def test_rejected_client_is_closed_and_untracked():
    server, port = await listening_server()
    rejected = []
    received = []

    def reject(event):
        rejected.append(event.client)
        return False

    server.on('accept', reject)
    server.on('receive', received.append)

    reader, writer = await asyncio.open_connection('127.0.0.1', port)
    try:
        assert await asyncio.wait_for(reader.read(100), 2) == b''
        assert len(rejected) == 1
        assert rejected[0].closed
        assert server.clients == ()
        assert received == []
    finally:
        writer.close()
        await server.close()


@pytest.mark.asyncio
async def test_receive_error_closes_client(wait_until):
    server, port = await listening_server()
    errors = []
    server.on('receive_error', lambda event: errors.append(event))

    reader, writer = await asyncio.open_connection('127.0.0.1', port)
    await wait_until(lambda: len(server.clients) == 1)
    client = server.clients[0]

    writer.close()
    try:
        await wait_until(lambda: client.closed)
        assert server.clients == ()
        assert errors[0].client is client
        assert errors[0].error.code == -errno.ECONNRESET
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_receive_error_veto_keeps_client(wait_until):
    server, port = await listening_server()
    errors = []

    def take_over(event):
        errors.append(event)
        return False

    server.on('receive_error', take_over)

    reader, writer = await asyncio.open_connection('127.0.0.1', port)
    await wait_until(lambda: len(server.clients) == 1)
    client = server.clients[0]

    writer.close()
    try:
        await wait_until(lambda: len(errors) == 1)
        await asyncio.sleep(0.05)
        assert not client.closed
        assert server.clients == (client,)
    finally:
        await client.close()
        await server.close()


@pytest.mark.asyncio
async def test_close_leaves_accepted_clients_open(wait_until):
    server, port = await listening_server()
    server.on('accept', lambda event: None)

    reader, writer = await asyncio.open_connection('127.0.0.1', port)
    await wait_until(lambda: len(server.clients) == 1)
    client = server.clients[0]

    await server.close()
    try:
        assert not server.listening
        assert server.clients == ()
        assert server.listener_count('accept') == 0
        assert not client.closed
        assert client.listener_count('receive') == 0

        with pytest.raises(ChannelClosedError):
            await server.get_info()
    finally:
        writer.close()
        await client.close()


@pytest.mark.asyncio
async def test_client_close_removes_it(wait_until):
    server, port = await listening_server()

    reader, writer = await asyncio.open_connection('127.0.0.1', port)
    await wait_until(lambda: len(server.clients) == 1)

    await server.clients[0].close()
    try:
        assert server.clients == ()
        assert await asyncio.wait_for(reader.read(100), 2) == b''
    finally:
        writer.close()
        await server.close()
