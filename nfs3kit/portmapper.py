"""Client of the portmapper service (program 100000, version 2)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from nfs3kit.errors import InvalidPortValueError, ProgramUnavailableError
from nfs3kit.rpc import RpcClient
from nfs3kit.transport import AsyncStream
from nfs3kit.xdr import Bool, Codec, UInt32, XdrStruct, xdr_field

__all__ = ["IPPROTO_TCP", "IPPROTO_UDP", "Mapping", "PMAP_PORT", "PortmapperClient"]

PMAP_PORT = 111
PROGRAM = 100000
VERSION = 2
IPPROTO_TCP = 6
IPPROTO_UDP = 17

PMAPPROC_NULL = 0
PMAPPROC_GETPORT = 3
PMAPPROC_DUMP = 4


@dataclass
class Mapping(XdrStruct):
    """A program registration."""

    prog: int = xdr_field(UInt32())
    vers: int = xdr_field(UInt32())
    prot: int = xdr_field(UInt32())
    port: int = xdr_field(UInt32())


class _LinkedList(Codec):
    """XDR linked list: each element preceded by a "more follows" flag."""

    def __init__(self, element: Any) -> None:
        self.element = element

    def pack(self, value: Any, out: Any) -> int:
        written = 0
        for item in value:
            written += Bool().pack(True, out) + item.pack(out)
        return written + Bool().pack(False, out)

    def unpack(self, stream: Any) -> tuple[list, int]:
        items = []
        more, total = Bool().unpack(stream)
        while more:
            item, read = self.element.unpack(stream)
            items.append(item)
            more, flag = Bool().unpack(stream)
            total += read + flag
        return items, total

    def packed_size(self, value: Any) -> int:
        return 4 + sum(4 + item.packed_size() for item in value)


class PortmapperClient:
    """Resolves program ports through the portmapper."""

    def __init__(self, stream: AsyncStream) -> None:
        self.rpc = RpcClient(stream)

    async def null(self) -> None:
        """Ping the service."""
        await self.rpc.call(PROGRAM, VERSION, PMAPPROC_NULL)

    async def getport(self, prog: int, vers: int) -> int:
        """Return the TCP port of a program version."""
        args = Mapping(prog, vers, IPPROTO_TCP, 0)
        port = await self.rpc.call(PROGRAM, VERSION, PMAPPROC_GETPORT, args, UInt32())
        if port == 0:
            raise ProgramUnavailableError()
        if port > 0xFFFF:
            raise InvalidPortValueError(port)
        return port

    async def dump(self) -> list[Mapping]:
        """Return every registration."""
        return await self.rpc.call(PROGRAM, VERSION, PMAPPROC_DUMP, None, _LinkedList(Mapping))