"""Client of the MOUNT service (program 100005, version 3)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from nfs3kit.errors import MountError
from nfs3kit.rpc import OpaqueAuth, RpcClient
from nfs3kit.transport import AsyncStream
from nfs3kit.xdr import Array, Bool, Codec, Opaque, UInt32, XdrEnum, XdrStruct, XdrUnion, xdr_field

__all__ = ["ExportEntry", "MountClient", "MountEntry", "MountResOk", "MountStatus"]

PROGRAM = 100005
VERSION = 3
MNTPATHLEN = 1024
MNTNAMLEN = 255
FHSIZE3 = 64

MOUNTPROC3_NULL = 0
MOUNTPROC3_MNT = 1
MOUNTPROC3_DUMP = 2
MOUNTPROC3_UMNT = 3
MOUNTPROC3_UMNTALL = 4
MOUNTPROC3_EXPORT = 5


class MountStatus(XdrEnum):
    """Status codes of the mount service."""

    MNT3_OK = 0
    MNT3ERR_PERM = 1
    MNT3ERR_NOENT = 2
    MNT3ERR_IO = 5
    MNT3ERR_ACCES = 13
    MNT3ERR_NOTDIR = 20
    MNT3ERR_INVAL = 22
    MNT3ERR_NAMETOOLONG = 63
    MNT3ERR_NOTSUPP = 10004
    MNT3ERR_SERVERFAULT = 10006


@dataclass
class MountResOk(XdrStruct):
    """Successful mount result: root file handle and accepted auth flavors."""

    fhandle: bytes = xdr_field(Opaque(FHSIZE3))
    auth_flavors: list = xdr_field(Array(UInt32()), default_factory=list)


@dataclass
class MountEntry(XdrStruct):
    """A client and the directory it has mounted."""

    hostname: bytes = xdr_field(Opaque(MNTNAMLEN))
    directory: bytes = xdr_field(Opaque(MNTPATHLEN))


@dataclass
class _DirPath(XdrStruct):
    path: bytes = xdr_field(Opaque(MNTPATHLEN))


class _LinkedList(Codec):
    """XDR linked list: each element preceded by a "more follows" flag."""

    def __init__(self, element: Any) -> None:
        self.element = element

    def pack(self, value: Any, out: Any) -> int:
        written = 0
        for item in value:
            written += Bool().pack(True, out) + self.element.pack(item, out)
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
        return 4 + sum(4 + self.element.packed_size(item) for item in value)


class _StructCodec(Codec):
    def __init__(self, cls: type) -> None:
        self.cls = cls

    def pack(self, value: Any, out: Any) -> int:
        return value.pack(out)

    def unpack(self, stream: Any) -> tuple[Any, int]:
        return self.cls.unpack(stream)

    def packed_size(self, value: Any) -> int:
        return value.packed_size()


@dataclass
class ExportEntry(XdrStruct):
    """An exported directory and the groups allowed to mount it."""

    directory: bytes = xdr_field(Opaque(MNTPATHLEN))
    groups: list = xdr_field(_LinkedList(Opaque(MNTNAMLEN)), default_factory=list)


class _MountRes(XdrUnion):
    tag_type = MountStatus
    arms = {
        status: (MountResOk if status is MountStatus.MNT3_OK else None) for status in MountStatus
    }


def _dirpath(path: str | bytes) -> _DirPath:
    return _DirPath(path.encode() if isinstance(path, str) else bytes(path))


class MountClient:
    """Mounts and unmounts exported directories."""

    def __init__(
        self,
        stream: AsyncStream,
        credential: OpaqueAuth | None = None,
        verifier: OpaqueAuth | None = None,
    ) -> None:
        self.rpc = RpcClient(stream, credential, verifier)

    async def _call(self, proc: int, args: Any = None, result: Any = None) -> Any:
        return await self.rpc.call(PROGRAM, VERSION, proc, args, result)

    async def null(self) -> None:
        """Ping the service."""
        await self._call(MOUNTPROC3_NULL)

    async def mnt(self, dirpath: str | bytes) -> MountResOk:
        """Mount ``dirpath``; raises ``MountError`` on a failure status."""
        res = await self._call(MOUNTPROC3_MNT, _dirpath(dirpath), _MountRes)
        if res.tag is not MountStatus.MNT3_OK:
            raise MountError(res.tag)
        return res.value

    async def dump(self) -> list[MountEntry]:
        """Return the mounts the server knows of."""
        return await self._call(MOUNTPROC3_DUMP, None, _LinkedList(_StructCodec(MountEntry)))

    async def umnt(self, dirpath: str | bytes) -> None:
        """Unmount ``dirpath``."""
        await self._call(MOUNTPROC3_UMNT, _dirpath(dirpath))

    async def umntall(self) -> None:
        """Unmount everything this client has mounted."""
        await self._call(MOUNTPROC3_UMNTALL)

    async def export(self) -> list[ExportEntry]:
        """Return the export list."""
        return await self._call(MOUNTPROC3_EXPORT, None, _LinkedList(_StructCodec(ExportEntry)))