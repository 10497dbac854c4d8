"""ONC RPC (RFC 5531) client over a record-marked byte stream."""

from __future__ import annotations

import io
import random
import struct
from dataclasses import dataclass
from typing import Any

from nfs3kit.errors import NotFullyParsedError, RpcError, RpcErrorKind
from nfs3kit.transport import AsyncStream
from nfs3kit.xdr import (
    Array,
    InvalidEnumValueError,
    Opaque,
    UInt32,
    XdrEnum,
    XdrError,
    XdrStruct,
    xdr_field,
)

__all__ = [
    "AuthFlavor",
    "AuthUnix",
    "OpaqueAuth",
    "RpcClient",
    "fragment_header",
    "parse_fragment_header",
]

RPC_VERSION_2 = 2
_CALL = 0
_REPLY = 1
_MSG_ACCEPTED = 0
_MSG_DENIED = 1
_SUCCESS = 0
_PROG_MISMATCH = 2
_MAX_ACCEPT_STAT = 5
_RPC_MISMATCH = 0
_AUTH_ERROR = 1
_LAST_FRAGMENT = 0x8000_0000

_U32 = UInt32()


class AuthFlavor(XdrEnum):
    """Authentication flavors."""

    AUTH_NONE = 0
    AUTH_UNIX = 1
    AUTH_SHORT = 2
    AUTH_DH = 3
    RPCSEC_GSS = 6


@dataclass
class OpaqueAuth(XdrStruct):
    """Credential or verifier: a flavor and its opaque body."""

    flavor: AuthFlavor = xdr_field(AuthFlavor, default=AuthFlavor.AUTH_NONE)
    body: bytes = xdr_field(Opaque(400), default=b"")


@dataclass
class AuthUnix(XdrStruct):
    """AUTH_UNIX credential body."""

    stamp: int = xdr_field(UInt32())
    machinename: bytes = xdr_field(Opaque(255))
    uid: int = xdr_field(UInt32())
    gid: int = xdr_field(UInt32())
    gids: list = xdr_field(Array(UInt32(), 16), default_factory=list)

    def to_opaque_auth(self) -> OpaqueAuth:
        """Wrap this credential as an ``OpaqueAuth``."""
        return OpaqueAuth(AuthFlavor.AUTH_UNIX, self.to_bytes())


def fragment_header(length: int, last: bool) -> bytes:
    """Return the 4-byte record marker for a fragment."""
    if not 0 <= length < _LAST_FRAGMENT:
        raise ValueError(f"fragment length {length} out of range")
    return struct.pack(">I", length | (_LAST_FRAGMENT if last else 0))


def parse_fragment_header(data: bytes) -> tuple[int, bool]:
    """Return ``(length, last)`` from a 4-byte record marker."""
    (raw,) = struct.unpack(">I", bytes(data))
    return raw & ~_LAST_FRAGMENT & 0xFFFF_FFFF, bool(raw & _LAST_FRAGMENT)


def _read_u32(cursor: io.BytesIO) -> int:
    return _U32.unpack(cursor)[0]


class RpcClient:
    """Sends RPC calls on a stream and decodes the replies.

    ``args`` passed to ``call`` is ``None`` or an XDR value with ``pack``;
    ``result`` is ``None`` or a codec or XDR type with ``unpack``.
    """

    def __init__(
        self,
        stream: AsyncStream,
        credential: OpaqueAuth | None = None,
        verifier: OpaqueAuth | None = None,
    ) -> None:
        self.stream = stream
        self.credential = credential if credential is not None else OpaqueAuth()
        self.verifier = verifier if verifier is not None else OpaqueAuth()
        self.xid = random.getrandbits(32)

    def __repr__(self) -> str:
        return "RpcClient()"

    async def call(
        self, prog: int, vers: int, proc: int, args: Any = None, result: Any = None
    ) -> Any:
        """Call a remote procedure and return its decoded result."""
        xid = self.xid
        self.xid = (xid + 1) & 0xFFFF_FFFF

        body = io.BytesIO()
        for value in (xid, _CALL, RPC_VERSION_2, prog, vers, proc):
            _U32.pack(value, body)
        self.credential.pack(body)
        self.verifier.pack(body)
        if args is not None:
            args.pack(body)
        payload = body.getvalue()
        if len(payload) % 4:
            raise RpcError(RpcErrorKind.WRONG_LENGTH)

        await self.stream.write_all(fragment_header(len(payload), True) + payload)
        return await self._recv_reply(xid, result)

    async def _recv_reply(self, xid: int, result: Any) -> Any:
        length, last = parse_fragment_header(await self.stream.read_exact(4))
        if not last:
            raise XdrError("fragment header does not have the last-fragment flag")
        buf = await self.stream.read_exact(length)
        cursor = io.BytesIO(buf)

        resp_xid = _read_u32(cursor)
        msg_type = _read_u32(cursor)
        if resp_xid != xid:
            raise RpcError(RpcErrorKind.UNEXPECTED_XID)
        if msg_type == _CALL:
            raise RpcError(RpcErrorKind.UNEXPECTED_CALL)
        if msg_type != _REPLY:
            raise InvalidEnumValueError(msg_type)

        reply_stat = _read_u32(cursor)
        if reply_stat == _MSG_DENIED:
            reject_stat = _read_u32(cursor)
            if reject_stat == _RPC_MISMATCH:
                _read_u32(cursor)
                _read_u32(cursor)
            elif reject_stat == _AUTH_ERROR:
                _read_u32(cursor)
            else:
                raise InvalidEnumValueError(reject_stat)
            raise RpcError.from_rejected(reject_stat)
        if reply_stat != _MSG_ACCEPTED:
            raise InvalidEnumValueError(reply_stat)

        OpaqueAuth.unpack(cursor)
        accept_stat = _read_u32(cursor)
        if accept_stat > _MAX_ACCEPT_STAT:
            raise InvalidEnumValueError(accept_stat)
        if accept_stat == _PROG_MISMATCH:
            _read_u32(cursor)
            _read_u32(cursor)
        if accept_stat != _SUCCESS:
            raise RpcError.from_accept_stat(accept_stat)

        value = None
        if result is not None:
            value, _ = result.unpack(cursor)
        if cursor.tell() != length:
            raise NotFullyParsedError(buf, cursor.tell())
        return value