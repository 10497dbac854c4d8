# nfs3kit

Asyncio building blocks for talking to NFSv3 infrastructure services, plus a
few helpers for writing a server that exports a local directory. The package
has no third-party dependencies.

## What is inside

| Module | Purpose |
| --- | --- |
| `nfs3kit.xdr` | XDR (RFC 4506) codecs: integers, booleans, void, opaque data, arrays, optionals, and declarative structs, enums and unions |
| `nfs3kit.rpc` | ONC RPC record marking, `OpaqueAuth` / `AuthUnix` credentials, and an `RpcClient` that sends calls and checks replies |
| `nfs3kit.portmapper` | `PortmapperClient`: `null`, `getport`, `dump` |
| `nfs3kit.mount` | `MountClient` for MOUNT version 3: `null`, `mnt`, `dump`, `umnt`, `umntall`, `export` |
| `nfs3kit.transport` | `AsyncStream`, `StreamConnection`, `Connector` and `TcpConnector` (including binding to a chosen local port) |
| `nfs3kit.errors` | Exceptions rooted at `Nfs3ClientError` |
| `nfs3kit.symbols_cache` | Maps numeric file handles to interned path components and back |
| `nfs3kit.iterator_cache` | Keeps partly read directory listings so they can be resumed by cookie |
| `nfs3kit.threshold_logger` | Logs the growth of a collection at 10k, 20k, 50k, 100k, ... |
| `nfs3kit.log_setup` | One call to send logs to the console, to a file, or both |

## Installing

```
pip install nfs3kit
```

To run the tests:

```
pip install "nfs3kit[test]"
pytest
```

## XDR

Declare a record as a dataclass deriving from `XdrStruct`, giving each field
its codec with `xdr_field`. Packing, unpacking and size calculation follow
the declaration order:

```python
from dataclasses import dataclass

from nfs3kit.xdr import Opaque, UInt32, XdrStruct, decode, encode, xdr_field

@dataclass
class Entry(XdrStruct):
    fileid: int = xdr_field(UInt32())
    name: bytes = xdr_field(Opaque())

data = Entry(fileid=7, name=b"a.txt").to_bytes()
assert Entry.from_bytes(data).name == b"a.txt"

assert decode(UInt32(), encode(UInt32(), 42)) == 42
```

Codecs are instances (`UInt32()`, `Opaque(64)`, `Array(UInt32(), 16)`,
`Optional(...)`, `FixedOpaque(8)`); `XdrStruct`, `XdrEnum` and `XdrUnion`
subclasses may be used wherever a codec is expected. Opaque data is padded to
a multiple of four bytes. A tag the type does not know raises
`InvalidEnumValueError`; other problems, such as short input, values out of
range or trailing bytes passed to `decode`, raise `XdrError`.

An `XdrUnion` subclass sets `arms`, a mapping from discriminant to the arm's
codec or `None` for an arm without data, and may set `tag_type` to an
`XdrEnum` so that tags are converted to it.

## Asking the portmapper and the mount daemon

```python
import asyncio

from nfs3kit.mount import MountClient
from nfs3kit.portmapper import PMAP_PORT, PortmapperClient
from nfs3kit.transport import TcpConnector

MOUNT_PROGRAM, MOUNT_VERSION = 100005, 3

async def main():
    connector = TcpConnector()

    portmap = PortmapperClient(await connector.connect("127.0.0.1", PMAP_PORT))
    await portmap.null()
    mount_port = await portmap.getport(MOUNT_PROGRAM, MOUNT_VERSION)
    for mapping in await portmap.dump():
        print(mapping.prog, mapping.vers, mapping.port)

    mount = MountClient(await connector.connect("127.0.0.1", mount_port))
    result = await mount.mnt("/")
    print(result.fhandle, result.auth_flavors)
    await mount.umnt("/")

asyncio.run(main())
```

Many servers accept requests only from a privileged source port; use
`TcpConnector.connect_with_port(host, port, local_port)` for that. When the
local port is taken it raises `OSError`.

Credentials are `OpaqueAuth` values; `AuthUnix(...).to_opaque_auth()` builds
an AUTH_UNIX credential to pass to `MountClient` or `RpcClient`.

Errors surface as exceptions:

- `ProgramUnavailableError` when the portmapper answers with port 0,
- `InvalidPortValueError` when it answers with a value above 65535,
- `MountError` when the mount daemon returns a failure status (`status` holds
  the `MountStatus`),
- `RpcError` for denied or unsuccessful RPC replies and for replies with the
  wrong XID, with the reason in its `kind` (`RpcErrorKind`),
- `NotFullyParsedError` when a reply holds bytes after the decoded result.

## Server-side helpers

`SymbolsCache(root)` gives every path under `root` a stable numeric handle.
Handle 1 (`SymbolsCache.ROOT_ID`) is the root. `lookup_by_id(parent_id, name,
check_path)` returns the handle of a name in a directory; with `check_path`
true a new handle is made only if the path exists, raising `BadHandleError`
when the parent is missing and `FileNotFoundError` when the name is.
`handle_to_path(handle)` returns the path relative to the root; an unknown
handle raises `BadHandleError`.

`IteratorCache(retention_period, max_cached_per_dir)` stores directory
iterators keyed by directory handle and cookie. `generate_base_cookie()` puts
a unique counter in the upper 32 bits of a cookie, `cache_state` keeps at most
`max_cached_per_dir` iterators per directory (the oldest go first),
`pop_state` takes one back out, and `cleanup(now)` drops those older than the
retention period. Dropped iterators are closed if they have a `close` method.
`IteratorCacheCleaner(cache, interval)` runs `cleanup` in a background thread
from `start()` until `stop()`.

`ThresholdLogger(name).check_and_log(size)` logs a collection's size only when
it reaches the next threshold, and `format_number` renders counts in at most
seven characters:

```python
from nfs3kit.threshold_logger import format_number

format_number(999_999)        # "999999"
format_number(1_234_567)      # "1234.57K"
format_number(10_500_000)     # "10.50M"
format_number(1_000_000_000)  # "1B"
```

`init_logging(log_level, log_file=None, enable_stdout=True)` accepts `error`,
`warn`, `info`, `debug` or `trace` in any case, raises `ValueError` for
anything else, and returns the handlers it added to the root logger.

## What the package does not do

- It has no client for the NFSv3 protocol itself (GETATTR, LOOKUP, READ,
  WRITE, READDIR and the rest); only the portmapper and mount services are
  covered.
- It contains no NFS server and no filesystem implementation; the caches and
  logging helpers are pieces such a server would use.
- It installs no command-line program.