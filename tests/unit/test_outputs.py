from __future__ import annotations

from state.outputs import EncryptedOutputStore


def test_add_dedups_and_normalizes_bytes():
    store = EncryptedOutputStore()

    assert store.add(b"\x01\x02") is True
    assert store.add("0102") is False
    assert store.contains(b"\x01\x02")
    assert "0102" in store
    assert store.count() == 1


def test_replace_swaps_contents():
    store = EncryptedOutputStore(["aa", "bb"])

    n = store.replace(["cc", "", "dd", "cc"])

    assert n == 2
    assert store.all() == ["cc", "dd"]
    assert "aa" not in store


def test_range_pagination():
    store = EncryptedOutputStore([f"{i:02x}" for i in range(5)])

    page = store.range(0, 1)
    assert page.encrypted_outputs == ["00", "01"]
    assert page.has_more is True
    assert page.total == 5
    assert (page.start, page.end) == (0, 1)

    last = store.range(3, 10)
    assert last.encrypted_outputs == ["03", "04"]
    assert last.has_more is False
    assert last.end == 4


def test_range_clamps_bounds():
    store = EncryptedOutputStore(["aa", "bb", "cc"])

    page = store.range(-5, 0)
    assert page.start == 0
    assert page.encrypted_outputs == ["aa"]

    inverted = store.range(2, 1)
    assert (inverted.start, inverted.end) == (2, 2)
    assert inverted.encrypted_outputs == ["cc"]


def test_range_on_empty_store():
    page = EncryptedOutputStore().range(0, 9)
    assert page.encrypted_outputs == []
    assert page.total == 0
    assert page.end == -1
    assert page.has_more is False
