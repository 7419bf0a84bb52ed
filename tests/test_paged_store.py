"""Tests for the paged record store."""

from __future__ import annotations

from pathlib import Path

import pytest

from webarchiver.exceptions import StorageError
from webarchiver.models import FileRecord, MatchRecord
from webarchiver.storage import InMemoryPageBackend, JsonPageBackend, PagedStore
from webarchiver.storage import paged


def make_file(file_id: int, fragments: list[str] | None = None) -> FileRecord:
    """Create a test FileRecord."""
    return FileRecord(
        id=file_id,
        in_path=f"site/{file_id}.html",
        path=f"{file_id}.html",
        out_path=f"out/{file_id}.html",
        fragments=fragments or [f"<p>{file_id}</p>"],
    )


@pytest.fixture
def backend() -> InMemoryPageBackend:
    return InMemoryPageBackend()


@pytest.fixture
def files(backend: InMemoryPageBackend) -> PagedStore:
    """Files store with two records per page, holding five records."""
    store = PagedStore("files", FileRecord, backend, page_size=2)
    for i in range(5):
        store.insert(make_file(i), i)
    return store


class TestPaging:
    """Tests for page creation and residency."""

    def test_pages_fill_in_order(self, files: PagedStore) -> None:
        """Five records with two per page use three pages."""
        assert files.page_count == 3
        assert len(files) == 5
        assert files.resident_page == 2

    def test_full_pages_are_spilled(self, files: PagedStore, backend: InMemoryPageBackend) -> None:
        """Every page except the resident tail has been saved."""
        assert backend.load("files", 0) is not None
        assert backend.load("files", 1) is not None
        assert backend.load("files", 2) is None

    def test_read_loads_owning_page(self, files: PagedStore) -> None:
        """Reading a key makes its page the resident one."""
        record = files.read(1)
        assert record.id == 1
        assert files.resident_page == 0
        assert files.read(3).id == 3
        assert files.resident_page == 1

    def test_read_missing_key(self, files: PagedStore) -> None:
        """Unknown keys read as None."""
        assert files.read(99) is None

    def test_update_survives_eviction(self, files: PagedStore) -> None:
        """An updated record is flushed when its page is evicted."""
        record = files.read(0)
        record.fragments = ["changed"]
        files.update(0, record)

        files.read(4)
        assert files.read(0).fragments == ["changed"]

    def test_unsaved_mutation_lost_after_eviction(self, files: PagedStore) -> None:
        """Loaded pages are copies; mutating without update() is not persisted."""
        files.read(0).fragments.append("lost")
        files.read(4)
        assert files.read(0).fragments == ["<p>0</p>"]

    def test_insert_after_reads_goes_to_tail(self, files: PagedStore) -> None:
        """Inserts always land on the tail page."""
        files.read(0)
        key = files.insert(make_file(5))
        assert key == 5
        assert files.resident_page == 2
        assert files.page_count == 3

        files.insert(make_file(6))
        assert files.page_count == 4

    def test_auto_keys_continue_after_explicit(self, backend: InMemoryPageBackend) -> None:
        """Auto keys follow the highest key seen."""
        store = PagedStore("files", FileRecord, backend)
        store.insert(make_file(7), 7)
        assert store.insert(make_file(8)) == 8

    def test_duplicate_key_raises(self, files: PagedStore) -> None:
        """Inserting an existing key is an error."""
        with pytest.raises(StorageError):
            files.insert(make_file(0), 0)

    def test_update_missing_key_inserts(self, files: PagedStore) -> None:
        """update() on an absent key behaves like insert()."""
        files.update(10, make_file(10))
        assert files.read(10).id == 10
        assert len(files) == 6

    def test_invalid_page_size(self) -> None:
        """page_size must be positive."""
        with pytest.raises(StorageError):
            PagedStore("files", FileRecord, page_size=0)


class TestLookups:
    """Tests for property lookups."""

    def test_scan_wraps_around(self, files: PagedStore) -> None:
        """A scan starting at a later page still finds earlier records."""
        files.read(4)
        assert files.key_for("path", "0.html") == 0
        assert files.read_by_property("path", "3.html").id == 3

    def test_scan_miss(self, files: PagedStore) -> None:
        """A value nobody has reads as None."""
        assert files.read_by_property("path", "missing.html") is None

    def test_index_lookup_loads_only_candidate_page(self) -> None:
        """A hit loads just the candidate's page; a miss loads nothing."""
        store = PagedStore("matches", MatchRecord, page_size=1, index_on="string")
        for text in ("<a>", "<b>", "<c>"):
            store.insert(MatchRecord(string=text))
        loads = store.page_loads

        assert store.key_for("string", "<z>") is None
        assert store.page_loads == loads
        assert store.key_for("string", "<a>") == 0
        assert store.page_loads == loads + 1
        assert store.resident_page == 0

    def test_index_keeps_digests_not_values(self) -> None:
        """The content index holds fixed-size digests, whatever the value length."""
        store = PagedStore("matches", MatchRecord, page_size=1, index_on="string")
        store.insert(MatchRecord(string="<p>" + "x" * 10_000 + "</p>"))
        assert all(isinstance(digest, bytes) and len(digest) == 16 for digest in store._index)

    def test_digest_collision_falls_back_to_scan(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Colliding digests still resolve to the record with the equal value."""
        monkeypatch.setattr(paged, "_digest", lambda value: b"same")
        store = PagedStore("matches", MatchRecord, page_size=1, index_on="string")
        first = store.insert(MatchRecord(string="<a>"))
        second = store.insert(MatchRecord(string="<b>"))

        assert store.key_for("string", "<a>") == first
        assert store.key_for("string", "<b>") == second
        assert store.key_for("string", "<z>") is None

    def test_index_follows_updates(self) -> None:
        """Updating the indexed attribute moves the index entry."""
        store = PagedStore("matches", MatchRecord, index_on="string")
        key = store.insert(MatchRecord(string="old"))
        store.update(key, MatchRecord(string="new"))

        assert store.key_for("string", "old") is None
        assert store.key_for("string", "new") == key

    def test_empty_store_lookup(self) -> None:
        """Lookups on an empty store return None."""
        store = PagedStore("files", FileRecord)
        assert store.key_for("path", "x") is None


class TestIteration:
    """Tests for items() and __iter__."""

    def test_iterates_in_key_order(self, files: PagedStore) -> None:
        """Records come back in insertion order across pages."""
        assert [record.id for record in files] == [0, 1, 2, 3, 4]

    def test_iteration_sees_resident_changes(self, files: PagedStore) -> None:
        """The resident page is flushed before iterating."""
        record = files.read(4)
        record.deduped = True
        files.update(4, record)
        assert [r.deduped for r in files] == [False, False, False, False, True]

    def test_iteration_leaves_no_page_resident(self, files: PagedStore) -> None:
        """After iterating no page is resident; reads still work."""
        list(files.items())
        assert files.resident_page is None
        assert files.read(2).id == 2

    def test_keys_and_contains(self, files: PagedStore) -> None:
        assert files.keys() == [0, 1, 2, 3, 4]
        assert 3 in files
        assert 9 not in files


class TestLifecycle:
    """Tests for close() and stats."""

    def test_close_deletes_pages(self, files: PagedStore, backend: InMemoryPageBackend) -> None:
        """Closing a store removes its pages from the backend."""
        files.read(0)
        files.close()
        assert backend.get_stats()["page_count"] == 0
        assert len(files) == 0

    def test_context_manager(self, backend: InMemoryPageBackend) -> None:
        with PagedStore("files", FileRecord, backend, page_size=1) as store:
            store.insert(make_file(0))
            store.insert(make_file(1))
        assert backend.get_stats()["page_count"] == 0

    def test_get_stats(self, files: PagedStore) -> None:
        stats = files.get_stats()
        assert stats["store"] == "files"
        assert stats["records"] == 5
        assert stats["pages"] == 3
        assert stats["page_flushes"] >= 2

    def test_json_backend_spills_to_disk(self, tmp_path: Path) -> None:
        """With a JSON backend, evicted pages exist as files."""
        store = PagedStore("files", FileRecord, JsonPageBackend(tmp_path), page_size=1)
        store.insert(make_file(0, ["it\\'s", "'.$a.'"]))
        store.insert(make_file(1))

        assert (tmp_path / "files-0.json").exists()
        assert store.read(0).fragments == ["it\\'s", "'.$a.'"]
