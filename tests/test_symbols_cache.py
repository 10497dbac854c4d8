from pathlib import Path

import pytest

from nfs3kit.symbols_cache import BadHandleError, SymbolsCache, SymbolsPath, SymbolsTable


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "a.txt").write_text("content")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.txt").write_text("content")
    return tmp_path


def test_symbols_path_join_is_immutable():
    base = SymbolsPath()
    joined = base.join(3).join(5)
    assert list(base.symbols()) == []
    assert list(joined.symbols()) == [3, 5]
    assert joined == SymbolsPath().join(3).join(5)
    assert hash(joined) == hash(SymbolsPath().join(3).join(5))


def test_symbols_table_interns_and_resolves():
    table = SymbolsTable()
    first = table.insert_or_resolve("dir")
    second = table.insert_or_resolve("file.txt")
    assert table.insert_or_resolve("dir") == first
    assert first != second
    assert len(table) == 2
    path = SymbolsPath().join(first).join(second)
    assert table.resolve_path(path) == Path("dir") / "file.txt"


def test_symbols_table_unknown_symbol():
    table = SymbolsTable()
    with pytest.raises(KeyError):
        table.resolve_path(SymbolsPath().join(7))


def test_root_handle(tree):
    cache = SymbolsCache(tree)
    assert cache.root / cache.handle_to_path(SymbolsCache.ROOT_ID) == tree
    assert cache.symbols_path(SymbolsCache.ROOT_ID) == SymbolsPath()


def test_lookup_assigns_next_handle_and_reuses_it(tree):
    cache = SymbolsCache(tree)
    handle = cache.lookup_by_id(SymbolsCache.ROOT_ID, "a.txt", True)
    assert handle == SymbolsCache.ROOT_ID + 1
    assert cache.lookup_by_id(SymbolsCache.ROOT_ID, "a.txt", True) == handle
    assert cache.handle_to_path(handle) == Path("a.txt")


def test_nested_lookup(tree):
    cache = SymbolsCache(tree)
    sub = cache.lookup_by_id(SymbolsCache.ROOT_ID, "sub", True)
    nested = cache.lookup_by_id(sub, "b.txt", True)
    assert cache.handle_to_path(nested) == Path("sub") / "b.txt"
    assert (cache.root / cache.handle_to_path(nested)).read_text() == "content"


def test_missing_name_with_check(tree):
    cache = SymbolsCache(tree)
    with pytest.raises(FileNotFoundError):
        cache.lookup_by_id(SymbolsCache.ROOT_ID, "missing.txt", True)


def test_missing_name_without_check_gets_handle(tree):
    cache = SymbolsCache(tree)
    handle = cache.lookup_by_id(SymbolsCache.ROOT_ID, "missing.txt", False)
    assert cache.handle_to_path(handle) == Path("missing.txt")


def test_unknown_handle(tree):
    cache = SymbolsCache(tree)
    with pytest.raises(BadHandleError):
        cache.handle_to_path(999)
    with pytest.raises(BadHandleError):
        cache.lookup_by_id(999, "a.txt", True)


def test_removed_parent_is_bad_handle(tree):
    cache = SymbolsCache(tree)
    ghost = cache.lookup_by_id(SymbolsCache.ROOT_ID, "ghost", False)
    with pytest.raises(BadHandleError):
        cache.lookup_by_id(ghost, "x", True)


def test_bytes_and_str_names_share_handle(tree):
    cache = SymbolsCache(tree)
    a = cache.lookup_by_id(SymbolsCache.ROOT_ID, b"a.txt", True)
    b = cache.lookup_by_id(SymbolsCache.ROOT_ID, "a.txt", True)
    assert a == b