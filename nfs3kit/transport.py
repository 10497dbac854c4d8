"""Byte-stream abstractions and TCP connectors used by the RPC clients."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

__all__ = ["AsyncStream", "Connector", "StreamConnection", "TcpConnector"]


class AsyncStream(ABC):
    """A bidirectional asynchronous byte stream."""

    @abstractmethod
    async def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; an empty result means end of stream."""

    @abstractmethod
    async def write(self, data: bytes) -> int:
        """Write some of ``data`` and return how many bytes were taken."""

    async def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        buf = bytearray()
        while len(buf) < size:
            chunk = await self.read(size - len(buf))
            if not chunk:
                raise asyncio.IncompleteReadError(bytes(buf), size)
            buf += chunk
        return bytes(buf)

    async def write_all(self, data: bytes) -> None:
        """Write every byte of ``data``."""
        view = memoryview(bytes(data))
        while view:
            written = await self.write(bytes(view))
            if written <= 0:
                raise ConnectionError("stream accepted no data")
            view = view[written:]


class StreamConnection(AsyncStream):
    """An ``AsyncStream`` over an asyncio reader and writer pair."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer

    async def read(self, size: int) -> bytes:
        return await self.reader.read(size)

    async def write(self, data: bytes) -> int:
        self.writer.write(data)
        await self.writer.drain()
        return len(data)

    async def close(self) -> None:
        """Close the connection."""
        self.writer.close()
        await self.writer.wait_closed()


class Connector(ABC):
    """Opens connections to remote endpoints."""

    @abstractmethod
    async def connect(self, host: str, port: int) -> AsyncStream:
        """Connect to ``host:port``."""

    @abstractmethod
    async def connect_with_port(self, host: str, port: int, local_port: int) -> AsyncStream:
        """Connect from a given local port.

        Many NFS servers require a privileged source port.  When the local
        port is taken an ``OSError`` with ``errno.EADDRINUSE`` is raised.
        """


class TcpConnector(Connector):
    """Connector over plain TCP sockets."""

    async def connect(self, host: str, port: int) -> StreamConnection:
        reader, writer = await asyncio.open_connection(host, port)
        return StreamConnection(reader, writer)

    async def connect_with_port(self, host: str, port: int, local_port: int) -> StreamConnection:
        reader, writer = await asyncio.open_connection(
            host, port, local_addr=("0.0.0.0", local_port)
        )
        return StreamConnection(reader, writer)