"""Mapping between numeric file handles and paths below a served root.

Path components are interned in a symbol table so that each cached path is
stored as a tuple of small integers.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from nfs3kit.threshold_logger import ThresholdLogger

__all__ = ["BadHandleError", "SymbolsCache", "SymbolsPath", "SymbolsTable"]

NameLike = Union[str, bytes, "os.PathLike[str]"]

_MAX_SYMBOLS = 2**32 - 1


class BadHandleError(LookupError):
    """Raised when a file handle is not known to the cache."""

    def __init__(self, handle: object) -> None:
        super().__init__(f"bad file handle: {handle!r}")
        self.handle = handle


@dataclass(frozen=True)
class SymbolsPath:
    """Relative path stored as a sequence of interned symbols."""

    parts: tuple[int, ...] = ()

    def join(self, symbol: int) -> SymbolsPath:
        """Return a new path with ``symbol`` appended."""
        return SymbolsPath(self.parts + (symbol,))

    def symbols(self) -> Iterator[int]:
        """Iterate over the symbols of the path."""
        return iter(self.parts)


class SymbolsTable:
    """Interns file names, giving each distinct name a stable integer symbol."""

    def __init__(self) -> None:
        self._by_name: dict[str, int] = {}
        self._names: list[str] = []

    def insert_or_resolve(self, name: NameLike) -> int:
        """Return the symbol for ``name``, interning it if it is new."""
        key = os.fsdecode(name)
        symbol = self._by_name.get(key)
        if symbol is None:
            if len(self._names) >= _MAX_SYMBOLS:
                raise OverflowError("symbols table full")
            symbol = len(self._names)
            self._names.append(key)
            self._by_name[key] = symbol
        return symbol

    def resolve_path(self, path: SymbolsPath) -> Path:
        """Turn a symbols path back into a relative filesystem path."""
        try:
            return Path(*(self._names[symbol] for symbol in path.symbols()))
        except IndexError:
            raise KeyError("symbol not found") from None

    def __len__(self) -> int:
        return len(self._names)


class SymbolsCache:
    """Thread-safe cache of handles for paths below ``root``."""

    ROOT_ID = 1

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)
        root_path = SymbolsPath()
        self._symbols = SymbolsTable()
        self._path_to_id: dict[SymbolsPath, int] = {root_path: self.ROOT_ID}
        self._id_to_path: dict[int, SymbolsPath] = {self.ROOT_ID: root_path}
        self._next_id = self.ROOT_ID + 1
        self._symbols_logger = ThresholdLogger("symbols_table")
        self._path_to_id_logger = ThresholdLogger("path_to_id_map")
        self._lock = threading.RLock()

    def symbols_path(self, handle: int) -> SymbolsPath:
        """Return the symbols path of ``handle``."""
        with self._lock:
            try:
                return self._id_to_path[handle]
            except KeyError:
                raise BadHandleError(handle) from None

    def handle_to_path(self, handle: int) -> Path:
        """Return the path of ``handle`` relative to the root."""
        with self._lock:
            return self._symbols.resolve_path(self.symbols_path(handle))

    def lookup_by_id(self, parent_id: int, name: NameLike, check_path: bool) -> int:
        """Return the handle of ``name`` inside the directory with handle ``parent_id``."""
        with self._lock:
            return self.lookup(self.symbols_path(parent_id), name, check_path)

    def lookup(self, parent: SymbolsPath, name: NameLike, check_path: bool) -> int:
        """Return the handle of ``name`` inside ``parent``, creating one if needed.

        With ``check_path`` a new handle is only made when the object exists,
        which keeps lookups of missing names from filling the cache.
        """
        with self._lock:
            symbol = self._symbols.insert_or_resolve(name)
            self._symbols_logger.check_and_log(len(self._symbols))

            item = parent.join(symbol)
            existing = self._path_to_id.get(item)
            if existing is not None:
                return existing

            if check_path:
                parent_path = self.root / self._symbols.resolve_path(parent)
                if not parent_path.exists():
                    raise BadHandleError(parent)
                target = parent_path / os.fsdecode(name)
                if not target.exists():
                    raise FileNotFoundError(2, "No such file or directory", str(target))

            handle = self._next_id
            self._next_id += 1
            self._path_to_id[item] = handle
            self._id_to_path[handle] = item
            self._path_to_id_logger.check_and_log(len(self._path_to_id))
            return handle