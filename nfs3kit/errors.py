"""Exceptions raised by the RPC, portmapper, mount and NFS clients."""

from __future__ import annotations

from enum import Enum
from typing import Any

__all__ = [
    "InvalidPortValueError",
    "MountError",
    "Nfs3ClientError",
    "NfsError",
    "NotFullyParsedError",
    "PortmapError",
    "ProgramUnavailableError",
    "RpcError",
    "RpcErrorKind",
]


class Nfs3ClientError(Exception):
    """Base class of client errors."""


class RpcErrorKind(Enum):
    """Ways in which an RPC exchange can fail; values are the messages."""

    UNEXPECTED_CALL = "Unexpected CALL request"
    AUTH = "Authentication error"
    RPC_MISMATCH = "RPC version mismatch"
    WRONG_LENGTH = "Wrong length in RPC message"
    UNEXPECTED_XID = "Unexpected XID in RPC reply"
    NOT_FULLY_PARSED = "Not fully parsed"
    PROG_UNAVAIL = "Program unavailable"
    PROG_MISMATCH = "Program mismatch"
    PROC_UNAVAIL = "Procedure unavailable"
    GARBAGE_ARGS = "Garbage arguments"
    SYSTEM_ERR = "System error"


_ACCEPT_STAT_KINDS = {
    1: RpcErrorKind.PROG_UNAVAIL,
    2: RpcErrorKind.PROG_MISMATCH,
    3: RpcErrorKind.PROC_UNAVAIL,
    4: RpcErrorKind.GARBAGE_ARGS,
    5: RpcErrorKind.SYSTEM_ERR,
}

_REJECT_STAT_KINDS = {
    0: RpcErrorKind.RPC_MISMATCH,
    1: RpcErrorKind.AUTH,
}


class RpcError(Nfs3ClientError):
    """An RPC-level failure."""

    def __init__(self, kind: RpcErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind

    @classmethod
    def from_accept_stat(cls, stat: int) -> RpcError:
        """Build the error for a non-successful accept status."""
        if int(stat) == 0:
            raise ValueError("SUCCESS is not an error status")
        try:
            return cls(_ACCEPT_STAT_KINDS[int(stat)])
        except KeyError:
            raise ValueError(f"unknown accept status: {stat}") from None

    @classmethod
    def from_rejected(cls, reject_stat: int) -> RpcError:
        """Build the error for a denied reply."""
        try:
            return cls(_REJECT_STAT_KINDS[int(reject_stat)])
        except KeyError:
            raise ValueError(f"unknown reject status: {reject_stat}") from None


class NotFullyParsedError(RpcError):
    """The reply held bytes after the decoded result."""

    def __init__(self, buf: bytes, pos: int) -> None:
        super().__init__(RpcErrorKind.NOT_FULLY_PARSED)
        self.buf = buf
        self.pos = pos


class PortmapError(Nfs3ClientError):
    """A portmapper request gave an unusable answer."""


class ProgramUnavailableError(PortmapError):
    """The requested program is not registered."""

    def __init__(self) -> None:
        super().__init__("Program unavailable")


class InvalidPortValueError(PortmapError):
    """The portmapper returned a value that is not a port."""

    def __init__(self, value: int) -> None:
        super().__init__(f"Invalid port value: {value}")
        self.value = value


class MountError(Nfs3ClientError):
    """The mount service returned an error status."""

    def __init__(self, status: Any) -> None:
        super().__init__(str(int(status)))
        self.status = status


class NfsError(Nfs3ClientError):
    """The NFS service returned an error status."""

    def __init__(self, status: Any) -> None:
        super().__init__(str(int(status)))
        self.status = status