import io
import struct

import pytest

from nfs3kit.errors import NotFullyParsedError, RpcError, RpcErrorKind
from nfs3kit.rpc import (
    AuthFlavor,
    AuthUnix,
    OpaqueAuth,
    RpcClient,
    fragment_header,
    parse_fragment_header,
)
from nfs3kit.transport import AsyncStream
from nfs3kit.xdr import UInt32, encode


def parse_request(payload):
    cur = io.BytesIO(payload)
    fields = [UInt32().unpack(cur)[0] for _ in range(6)]
    cred, _ = OpaqueAuth.unpack(cur)
    verf, _ = OpaqueAuth.unpack(cur)
    keys = ("xid", "mtype", "rpcvers", "prog", "vers", "proc")
    req = dict(zip(keys, fields))
    req.update(cred=cred, verf=verf, args=cur.read())
    return req


def accepted(xid, result=b"", stat=0):
    return struct.pack(">IIIIII", xid, 1, 0, 0, 0, stat) + result


class ServerStream(AsyncStream):
    def __init__(self, respond):
        self.respond = respond
        self.sent = bytearray()
        self.inbox = bytearray()
        self.requests = []

    async def write(self, data):
        part = bytes(data[:7])
        self.sent += part
        while len(self.sent) >= 4:
            length, _ = parse_fragment_header(bytes(self.sent[:4]))
            if len(self.sent) < 4 + length:
                break
            payload = bytes(self.sent[4 : 4 + length])
            del self.sent[: 4 + length]
            req = parse_request(payload)
            self.requests.append(req)
            reply = self.respond(req)
            self.inbox += fragment_header(len(reply), True) + reply
        return len(part)

    async def read(self, size):
        part = bytes(self.inbox[:size])
        del self.inbox[:size]
        return part


def test_fragment_header_wire_format():
    assert fragment_header(8, True) == b"\x80\x00\x00\x08"
    assert parse_fragment_header(fragment_header(1234, False)) == (1234, False)
    assert parse_fragment_header(fragment_header(1234, True)) == (1234, True)


def test_auth_unix_round_trip():
    cred = AuthUnix(0xAAAA_AAAA, b"unknown", 0xFFFF_FFFE, 0xFFFF_FFFE, [])
    auth = cred.to_opaque_auth()
    assert auth.flavor is AuthFlavor.AUTH_UNIX
    assert AuthUnix.from_bytes(auth.body) == cred


@pytest.mark.asyncio
async def test_call_success_and_xid_increments():
    stream = ServerStream(lambda r: accepted(r["xid"], encode(UInt32(), r["proc"] + 100)))
    client = RpcClient(stream)
    first_xid = client.xid
    assert await client.call(100000, 2, 3, None, UInt32()) == 103
    assert await client.call(100000, 2, 4, None, UInt32()) == 104
    assert stream.requests[1]["xid"] == (first_xid + 1) & 0xFFFF_FFFF
    req = stream.requests[0]
    assert (req["mtype"], req["rpcvers"], req["prog"], req["vers"]) == (0, 2, 100000, 2)
    assert req["cred"] == OpaqueAuth()


@pytest.mark.asyncio
async def test_call_sends_args_and_credential():
    cred = AuthUnix(1, b"host", 10, 20, [30]).to_opaque_auth()
    stream = ServerStream(lambda r: accepted(r["xid"]))
    client = RpcClient(stream, cred)
    assert await client.call(1, 1, 1, OpaqueAuth(AuthFlavor.AUTH_NONE, b"ab")) is None
    assert stream.requests[0]["cred"] == cred
    assert OpaqueAuth.from_bytes(stream.requests[0]["args"]).body == b"ab"


@pytest.mark.asyncio
async def test_unexpected_xid():
    client = RpcClient(ServerStream(lambda r: accepted((r["xid"] + 5) & 0xFFFF_FFFF)))
    with pytest.raises(RpcError) as info:
        await client.call(1, 1, 0)
    assert info.value.kind is RpcErrorKind.UNEXPECTED_XID


@pytest.mark.asyncio
async def test_proc_unavailable():
    client = RpcClient(ServerStream(lambda r: accepted(r["xid"], stat=3)))
    with pytest.raises(RpcError) as info:
        await client.call(1, 1, 0)
    assert info.value.kind is RpcErrorKind.PROC_UNAVAIL


@pytest.mark.asyncio
async def test_denied_auth():
    client = RpcClient(ServerStream(lambda r: struct.pack(">IIIII", r["xid"], 1, 1, 1, 1)))
    with pytest.raises(RpcError) as info:
        await client.call(1, 1, 0)
    assert info.value.kind is RpcErrorKind.AUTH


@pytest.mark.asyncio
async def test_unexpected_call():
    client = RpcClient(ServerStream(lambda r: struct.pack(">II", r["xid"], 0)))
    with pytest.raises(RpcError) as info:
        await client.call(1, 1, 0)
    assert info.value.kind is RpcErrorKind.UNEXPECTED_CALL


@pytest.mark.asyncio
async def test_trailing_bytes():
    client = RpcClient(ServerStream(lambda r: accepted(r["xid"], encode(UInt32(), 7) * 2)))
    with pytest.raises(NotFullyParsedError) as info:
        await client.call(1, 1, 0, None, UInt32())
    assert info.value.pos == len(info.value.buf) - 4