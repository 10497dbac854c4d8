import asyncio

import pytest

from nfs3kit.transport import AsyncStream, TcpConnector


class ChunkStream(AsyncStream):
    def __init__(self, data=b"", chunk=3):
        self.data = bytearray(data)
        self.chunk = chunk
        self.written = bytearray()

    async def read(self, size):
        part = bytes(self.data[: min(size, self.chunk)])
        del self.data[: len(part)]
        return part

    async def write(self, data):
        part = bytes(data[: self.chunk])
        self.written += part
        return len(part)


@pytest.mark.asyncio
async def test_read_exact_joins_chunks():
    stream = ChunkStream(b"abcdefghij")
    assert await AsyncStream.read_exact(stream, 8) == b"abcdefgh"
    assert await AsyncStream.read_exact(stream, 2) == b"ij"


@pytest.mark.asyncio
async def test_read_exact_end_of_stream():
    stream = ChunkStream(b"abc")
    with pytest.raises(asyncio.IncompleteReadError) as info:
        await AsyncStream.read_exact(stream, 5)
    assert info.value.partial == b"abc"


@pytest.mark.asyncio
async def test_write_all_handles_partial_writes():
    stream = ChunkStream()
    await AsyncStream.write_all(stream, b"0123456789")
    assert bytes(stream.written) == b"0123456789"


@pytest.mark.asyncio
async def test_tcp_connector_round_trip():
    async def echo(reader, writer):
        data = await reader.readexactly(5)
        writer.write(data[::-1])
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(echo, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    async with server:
        conn = await TcpConnector().connect("127.0.0.1", port)
        await conn.write_all(b"hello")
        assert await conn.read_exact(5) == b"olleh"
        await conn.close()