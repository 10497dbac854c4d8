"""Asyncio building blocks for NFSv3: XDR codec, ONC RPC, portmapper and mount clients, server caches."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "iterator_cache",
    "log_setup",
    "mount",
    "portmapper",
    "rpc",
    "symbols_cache",
    "threshold_logger",
    "transport",
    "xdr",
]