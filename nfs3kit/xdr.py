"""XDR (RFC 4506) encoding primitives and declarative composite types.

Codecs write to any binary object with ``write`` and read from any object
with ``read``.  ``pack`` returns the number of bytes written and ``unpack``
returns ``(value, bytes_read)``.
"""

from __future__ import annotations

import dataclasses
import io
import struct
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import IntEnum
from typing import Any, ClassVar


class XdrError(Exception):
    """Raised when a value cannot be encoded or decoded."""


class InvalidEnumValueError(XdrError):
    """Raised when a discriminant or enum value is not known to the type."""

    def __init__(self, value: int) -> None:
        super().__init__(f"invalid enum value: {value}")
        self.value = value


def _read_exact(stream: Any, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            got = size - remaining
            raise XdrError(f"unexpected end of data: wanted {size} bytes, got {got}")
        chunks.append(bytes(chunk))
        remaining -= len(chunk)
    return b"".join(chunks)


def _padding(length: int) -> int:
    return (-length) % 4


class Codec(ABC):
    """Encoder and decoder for one XDR type."""

    @abstractmethod
    def pack(self, value: Any, out: Any) -> int:
        """Write ``value`` to ``out`` and return the number of bytes written."""

    @abstractmethod
    def unpack(self, stream: Any) -> tuple[Any, int]:
        """Read a value from ``stream`` and return it with the bytes consumed."""

    @abstractmethod
    def packed_size(self, value: Any) -> int:
        """Return how many bytes ``value`` takes once packed."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _FixedIntCodec(Codec):
    _format: ClassVar[str]
    _min: ClassVar[int]
    _max: ClassVar[int]

    def pack(self, value: Any, out: Any) -> int:
        if not isinstance(value, int):
            raise XdrError(f"{type(self).__name__} expects an int, got {type(value).__name__}")
        if not self._min <= value <= self._max:
            raise XdrError(f"{value} is out of range for {type(self).__name__}")
        data = struct.pack(self._format, int(value))
        out.write(data)
        return len(data)

    def unpack(self, stream: Any) -> tuple[int, int]:
        size = struct.calcsize(self._format)
        (value,) = struct.unpack(self._format, _read_exact(stream, size))
        return value, size

    def packed_size(self, value: Any) -> int:
        return struct.calcsize(self._format)


class UInt32(_FixedIntCodec):
    """Unsigned 32-bit integer."""

    _format = ">I"
    _min = 0
    _max = 2**32 - 1


class Int32(_FixedIntCodec):
    """Signed 32-bit integer."""

    _format = ">i"
    _min = -(2**31)
    _max = 2**31 - 1


class UInt64(_FixedIntCodec):
    """Unsigned 64-bit integer (XDR hyper)."""

    _format = ">Q"
    _min = 0
    _max = 2**64 - 1


_UINT32 = UInt32()


class Bool(Codec):
    """Boolean encoded as a 32-bit 0 or 1."""

    def pack(self, value: Any, out: Any) -> int:
        return _UINT32.pack(1 if value else 0, out)

    def unpack(self, stream: Any) -> tuple[bool, int]:
        raw, read = _UINT32.unpack(stream)
        if raw not in (0, 1):
            raise InvalidEnumValueError(raw)
        return raw == 1, read

    def packed_size(self, value: Any) -> int:
        return 4


class Void(Codec):
    """Type that carries no data."""

    def pack(self, value: Any, out: Any) -> int:
        return 0

    def unpack(self, stream: Any) -> tuple[None, int]:
        return None, 0

    def packed_size(self, value: Any) -> int:
        return 0


class Opaque(Codec):
    """Variable-length opaque data with an optional maximum length."""

    def __init__(self, max_length: int | None = None) -> None:
        self.max_length = max_length

    def _check_length(self, length: int) -> None:
        if self.max_length is not None and length > self.max_length:
            raise XdrError(f"opaque length {length} exceeds maximum {self.max_length}")

    def pack(self, value: Any, out: Any) -> int:
        data = bytes(value)
        self._check_length(len(data))
        written = _UINT32.pack(len(data), out)
        out.write(data)
        pad = _padding(len(data))
        out.write(b"\x00" * pad)
        return written + len(data) + pad

    def unpack(self, stream: Any) -> tuple[bytes, int]:
        length, read = _UINT32.unpack(stream)
        self._check_length(length)
        data = _read_exact(stream, length)
        pad = _padding(length)
        _read_exact(stream, pad)
        return data, read + length + pad

    def packed_size(self, value: Any) -> int:
        length = len(bytes(value))
        return 4 + length + _padding(length)

    def __repr__(self) -> str:
        return f"Opaque(max_length={self.max_length!r})"


class FixedOpaque(Codec):
    """Opaque data of a fixed length, without a length prefix."""

    def __init__(self, size: int) -> None:
        self.size = size

    def pack(self, value: Any, out: Any) -> int:
        data = bytes(value)
        if len(data) != self.size:
            raise XdrError(f"fixed opaque expects {self.size} bytes, got {len(data)}")
        pad = _padding(self.size)
        out.write(data)
        out.write(b"\x00" * pad)
        return self.size + pad

    def unpack(self, stream: Any) -> tuple[bytes, int]:
        data = _read_exact(stream, self.size)
        pad = _padding(self.size)
        _read_exact(stream, pad)
        return data, self.size + pad

    def packed_size(self, value: Any) -> int:
        return self.size + _padding(self.size)

    def __repr__(self) -> str:
        return f"FixedOpaque({self.size})"


class Array(Codec):
    """Variable-length array of elements of one type."""

    def __init__(self, element: Any, max_length: int | None = None) -> None:
        self.element = _as_codec(element)
        self.max_length = max_length

    def _check_length(self, length: int) -> None:
        if self.max_length is not None and length > self.max_length:
            raise XdrError(f"array length {length} exceeds maximum {self.max_length}")

    def pack(self, value: Any, out: Any) -> int:
        items = list(value)
        self._check_length(len(items))
        written = _UINT32.pack(len(items), out)
        return written + sum(self.element.pack(item, out) for item in items)

    def unpack(self, stream: Any) -> tuple[list[Any], int]:
        length, total = _UINT32.unpack(stream)
        self._check_length(length)
        items = []
        for _ in range(length):
            item, read = self.element.unpack(stream)
            items.append(item)
            total += read
        return items, total

    def packed_size(self, value: Any) -> int:
        return 4 + sum(self.element.packed_size(item) for item in value)

    def __repr__(self) -> str:
        return f"Array({self.element!r}, max_length={self.max_length!r})"


class Optional(Codec):
    """Optional value: a boolean flag followed by the value when present."""

    def __init__(self, element: Any) -> None:
        self.element = _as_codec(element)

    def pack(self, value: Any, out: Any) -> int:
        if value is None:
            return _UINT32.pack(0, out)
        return _UINT32.pack(1, out) + self.element.pack(value, out)

    def unpack(self, stream: Any) -> tuple[Any, int]:
        present, read = Bool().unpack(stream)
        if not present:
            return None, read
        value, more = self.element.unpack(stream)
        return value, read + more

    def packed_size(self, value: Any) -> int:
        if value is None:
            return 4
        return 4 + self.element.packed_size(value)

    def __repr__(self) -> str:
        return f"Optional({self.element!r})"


class _TypeCodec(Codec):
    """Codec delegating to a struct, enum or union class."""

    def __init__(self, cls: type) -> None:
        self.cls = cls

    def _coerce(self, value: Any) -> Any:
        if isinstance(value, self.cls):
            return value
        if issubclass(self.cls, XdrEnum) and isinstance(value, int):
            try:
                return self.cls(value)
            except ValueError:
                raise InvalidEnumValueError(value) from None
        raise XdrError(f"expected {self.cls.__name__}, got {type(value).__name__}")

    def pack(self, value: Any, out: Any) -> int:
        return self._coerce(value).pack(out)

    def unpack(self, stream: Any) -> tuple[Any, int]:
        return self.cls.unpack(stream)

    def packed_size(self, value: Any) -> int:
        return self._coerce(value).packed_size()

    def __repr__(self) -> str:
        return f"{self.cls.__name__}"


def _as_codec(spec: Any) -> Codec:
    if isinstance(spec, Codec):
        return spec
    if isinstance(spec, type) and issubclass(spec, (XdrStruct, XdrEnum, XdrUnion)):
        return _TypeCodec(spec)
    raise TypeError(f"{spec!r} is not an XDR codec or XDR type")


def xdr_field(codec: Any, **kwargs: Any) -> Any:
    """Declare a dataclass field of an ``XdrStruct`` encoded with ``codec``."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata["xdr"] = _as_codec(codec)
    return dataclasses.field(metadata=metadata, **kwargs)


class XdrStruct:
    """Base for dataclasses whose fields are packed in declaration order."""

    @classmethod
    def _xdr_fields(cls) -> list[tuple[str, Codec]]:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls.__name__} must be a dataclass")
        result = []
        for f in dataclasses.fields(cls):
            codec = f.metadata.get("xdr")
            if codec is None:
                raise TypeError(f"field {cls.__name__}.{f.name} has no XDR codec")
            result.append((f.name, codec))
        return result

    def pack(self, out: Any) -> int:
        return sum(codec.pack(getattr(self, name), out) for name, codec in self._xdr_fields())

    @classmethod
    def unpack(cls, stream: Any) -> tuple[Any, int]:
        values = {}
        total = 0
        for name, codec in cls._xdr_fields():
            values[name], read = codec.unpack(stream)
            total += read
        return cls(**values), total

    def packed_size(self) -> int:
        return sum(codec.packed_size(getattr(self, name)) for name, codec in self._xdr_fields())

    def to_bytes(self) -> bytes:
        return encode(type(self), self)

    @classmethod
    def from_bytes(cls, data: bytes) -> Any:
        return decode(cls, data)


class XdrEnum(IntEnum):
    """Enumeration packed as an unsigned 32-bit value."""

    def pack(self, out: Any) -> int:
        return _UINT32.pack(int(self), out)

    @classmethod
    def unpack(cls, stream: Any) -> tuple[Any, int]:
        tag, read = _UINT32.unpack(stream)
        try:
            return cls(tag), read
        except ValueError:
            raise InvalidEnumValueError(tag) from None

    def packed_size(self) -> int:
        return 4


class XdrUnion:
    """Discriminated union.

    Subclasses set ``arms`` to a mapping from discriminant to the codec or
    XDR type of the arm, or ``None`` for an arm without data.  When
    ``tag_type`` is set, discriminants are converted to that enum.
    """

    arms: ClassVar[Mapping[int, Any]] = {}
    tag_type: ClassVar[type | None] = None
    _codecs: ClassVar[dict[int, Codec | None]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._codecs = {
            int(tag): None if spec is None else _as_codec(spec) for tag, spec in cls.arms.items()
        }

    def __init__(self, tag: int, value: Any = None) -> None:
        codec = self._arm(int(tag))
        if codec is None and value is not None:
            raise ValueError(f"arm {tag} of {type(self).__name__} carries no data")
        self.tag = self._convert_tag(int(tag))
        self.value = value

    @classmethod
    def _arm(cls, tag: int) -> Codec | None:
        if tag not in cls._codecs:
            raise InvalidEnumValueError(tag)
        return cls._codecs[tag]

    @classmethod
    def _convert_tag(cls, tag: int) -> Any:
        if cls.tag_type is None:
            return tag
        try:
            return cls.tag_type(tag)
        except ValueError:
            raise InvalidEnumValueError(tag) from None

    def pack(self, out: Any) -> int:
        codec = self._arm(int(self.tag))
        written = _UINT32.pack(int(self.tag), out)
        if codec is not None:
            written += codec.pack(self.value, out)
        return written

    @classmethod
    def unpack(cls, stream: Any) -> tuple[Any, int]:
        tag, total = _UINT32.unpack(stream)
        codec = cls._arm(tag)
        value = None
        if codec is not None:
            value, read = codec.unpack(stream)
            total += read
        return cls(tag, value), total

    def packed_size(self) -> int:
        codec = self._arm(int(self.tag))
        return 4 if codec is None else 4 + codec.packed_size(self.value)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.tag == other.tag and self.value == other.value

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.tag!r}, value={self.value!r})"


def encode(codec: Any, value: Any) -> bytes:
    """Pack ``value`` with ``codec`` and return the bytes."""
    out = io.BytesIO()
    _as_codec(codec).pack(value, out)
    return out.getvalue()


def decode(codec: Any, data: bytes) -> Any:
    """Unpack one value from ``data``; every byte must be consumed."""
    stream = io.BytesIO(data)
    value, read = _as_codec(codec).unpack(stream)
    if read != len(data):
        raise XdrError(f"{len(data) - read} trailing bytes after value")
    return value