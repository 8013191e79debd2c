"""Tests for the in-memory and file-backed repositories."""

import asyncio
import json
import threading
from unittest.mock import patch

import pytest

from shorturl.models.url import URLMapping
from shorturl.repositories.base import (
    BackingStoreError,
    DuplicateTokenError,
    DuplicateURLError,
)
from shorturl.repositories.memory import FileURLRepository, InMemoryURLRepository
from tests.utils import random_url


@pytest.mark.repository
class TestInMemoryURLRepository:
    """Test suite for the in-memory repository."""

    @pytest.mark.asyncio
    async def test_empty_repository(self, memory_repository):
        assert await memory_repository.next_id() == 0
        assert await memory_repository.find_token("https://example.com") is None
        assert await memory_repository.find_original_url("abc") is None

    @pytest.mark.asyncio
    async def test_store_and_find(self, memory_repository):
        """Test that a stored mapping is visible from both sides."""
        test_url = random_url()

        mapping = await memory_repository.store(test_url, "Ab3dE9xZ")

        assert mapping == URLMapping(id=1, original_url=test_url, short_token="Ab3dE9xZ")
        assert await memory_repository.find_token(test_url) == "Ab3dE9xZ"
        assert await memory_repository.find_original_url("Ab3dE9xZ") == test_url
        assert await memory_repository.next_id() == 1

    @pytest.mark.asyncio
    async def test_lookup_is_exact(self, memory_repository):
        """Test that lookups are case and byte exact."""
        await memory_repository.store("https://example.com/Path", "abc")

        assert await memory_repository.find_token("https://example.com/path") is None
        assert await memory_repository.find_token("https://example.com/Path/") is None
        assert await memory_repository.find_original_url("ABC") is None

    @pytest.mark.asyncio
    async def test_counter_increments_per_insert(self, memory_repository):
        for i in range(5):
            mapping = await memory_repository.store(f"https://example.com/{i}", f"t{i}")
            assert mapping.id == i + 1

        assert await memory_repository.next_id() == 5

    @pytest.mark.asyncio
    async def test_store_same_pair_is_noop(self, memory_repository):
        """Test that storing an identical mapping again changes nothing."""
        test_url = random_url()
        first = await memory_repository.store(test_url, "same")

        second = await memory_repository.store(test_url, "same")

        assert second == first
        assert await memory_repository.next_id() == 1

    @pytest.mark.asyncio
    async def test_duplicate_token(self, memory_repository):
        """Test that a token cannot be assigned to a second URL."""
        first_url = random_url()
        await memory_repository.store(first_url, "taken")

        with pytest.raises(DuplicateTokenError) as excinfo:
            await memory_repository.store(random_url(), "taken")

        assert excinfo.value.value == "taken"
        assert excinfo.value.assigned_to == first_url
        assert await memory_repository.find_original_url("taken") == first_url
        assert await memory_repository.next_id() == 1

    @pytest.mark.asyncio
    async def test_duplicate_url(self, memory_repository):
        """Test that a URL cannot be assigned a second token."""
        test_url = random_url()
        await memory_repository.store(test_url, "first")

        with pytest.raises(DuplicateURLError) as excinfo:
            await memory_repository.store(test_url, "second")

        assert excinfo.value.assigned_to == "first"
        assert await memory_repository.find_token(test_url) == "first"
        assert await memory_repository.find_original_url("second") is None
        assert await memory_repository.next_id() == 1

    @pytest.mark.asyncio
    async def test_url_conflict_reported_before_token_conflict(self, memory_repository):
        """Test the error raised when both sides of the mapping are taken."""
        await memory_repository.store("https://a.example.com", "tokA")
        await memory_repository.store("https://b.example.com", "tokB")

        with pytest.raises(DuplicateURLError):
            await memory_repository.store("https://a.example.com", "tokB")

    @pytest.mark.asyncio
    async def test_failed_persist_leaves_indices_untouched(self, memory_repository):
        test_url = random_url()

        with patch.object(
            memory_repository, "_persist", side_effect=BackingStoreError("disk full")
        ):
            with pytest.raises(BackingStoreError):
                await memory_repository.store(test_url, "lost")

        assert await memory_repository.find_token(test_url) is None
        assert await memory_repository.find_original_url("lost") is None
        assert await memory_repository.next_id() == 0

    @pytest.mark.asyncio
    async def test_cancelled_store_keeps_started_write(self, memory_repository):
        """Test that cancelling a store mid-write still indexes the mapping."""
        test_url = random_url()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_persist(mapping):
            entered.set()
            await release.wait()

        with patch.object(memory_repository, "_persist", side_effect=slow_persist):
            task = asyncio.create_task(memory_repository.store(test_url, "kept"))
            await entered.wait()
            task.cancel()
            await asyncio.sleep(0)
            release.set()

            with pytest.raises(asyncio.CancelledError):
                await task

        assert await memory_repository.find_token(test_url) == "kept"
        assert await memory_repository.find_original_url("kept") == test_url
        assert await memory_repository.next_id() == 1

    @pytest.mark.asyncio
    async def test_store_cancelled_before_lock_stores_nothing(self, memory_repository):
        test_url = random_url()

        async with memory_repository._lock:
            task = asyncio.create_task(memory_repository.store(test_url, "never"))
            await asyncio.sleep(0)
            task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert await memory_repository.find_token(test_url) is None
        assert await memory_repository.next_id() == 0

    @pytest.mark.asyncio
    async def test_concurrent_stores_of_same_token(self):
        """Test that only one of many concurrent claims on a token wins."""
        repository = InMemoryURLRepository()
        urls = [f"https://example.com/{i}" for i in range(20)]

        results = await asyncio.gather(
            *(repository.store(url, "shared") for url in urls),
            return_exceptions=True,
        )

        stored = [r for r in results if isinstance(r, URLMapping)]
        rejected = [r for r in results if isinstance(r, DuplicateTokenError)]
        assert len(stored) == 1
        assert len(rejected) == len(urls) - 1
        assert await repository.find_original_url("shared") == stored[0].original_url
        assert await repository.next_id() == 1


@pytest.mark.repository
class TestFileURLRepository:
    """Test suite for the file-backed repository."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty_store(self, file_repository):
        assert not file_repository.path.exists()
        assert await file_repository.next_id() == 0

    @pytest.mark.asyncio
    async def test_store_appends_record(self, file_repository):
        """Test the on-disk record format."""
        await file_repository.store("https://example.com", "Ab3dE9xZ")

        lines = file_repository.path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line) for line in lines] == [
            {"uuid": "1", "short_url": "Ab3dE9xZ", "original_url": "https://example.com"}
        ]

    @pytest.mark.asyncio
    async def test_noop_store_does_not_append(self, file_repository):
        await file_repository.store("https://example.com", "abc")
        await file_repository.store("https://example.com", "abc")

        lines = file_repository.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1

    @pytest.mark.asyncio
    async def test_mappings_survive_reopen(self, file_repository):
        """Test that a new repository on the same file sees earlier mappings."""
        await file_repository.store("https://one.example.com", "one")
        await file_repository.store("https://two.example.com", "two")

        reopened = FileURLRepository(file_repository.path)
        await reopened.open()

        assert await reopened.find_original_url("one") == "https://one.example.com"
        assert await reopened.find_token("https://two.example.com") == "two"
        assert await reopened.next_id() == 2

        mapping = await reopened.store("https://three.example.com", "three")
        assert mapping.id == 3

    @pytest.mark.asyncio
    async def test_blank_lines_are_skipped(self, tmp_path):
        path = tmp_path / "urls.json"
        path.write_text(
            '{"uuid": "1", "short_url": "abc", "original_url": "https://example.com"}\n\n',
            encoding="utf-8",
        )
        repository = FileURLRepository(path)

        await repository.open()

        assert await repository.find_original_url("abc") == "https://example.com"

    @pytest.mark.asyncio
    async def test_corrupt_line_raises(self, tmp_path):
        path = tmp_path / "urls.json"
        path.write_text("not json\n", encoding="utf-8")
        repository = FileURLRepository(path)

        with pytest.raises(BackingStoreError) as excinfo:
            await repository.open()

        assert "line 1" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_record_missing_field_raises(self, tmp_path):
        path = tmp_path / "urls.json"
        path.write_text('{"uuid": "1", "short_url": "abc"}\n', encoding="utf-8")

        with pytest.raises(BackingStoreError):
            await FileURLRepository(path).open()

    @pytest.mark.asyncio
    async def test_conflicting_records_raise(self, tmp_path):
        """Test that a file assigning one token to two URLs is rejected."""
        path = tmp_path / "urls.json"
        records = [
            {"uuid": "1", "short_url": "abc", "original_url": "https://a.example.com"},
            {"uuid": "2", "short_url": "abc", "original_url": "https://b.example.com"},
        ]
        path.write_text("".join(json.dumps(r) + "\n" for r in records), encoding="utf-8")

        with pytest.raises(BackingStoreError):
            await FileURLRepository(path).open()

    @pytest.mark.asyncio
    async def test_write_failure_raises_backing_store_error(self, file_repository):
        test_url = random_url()

        with patch("pathlib.Path.open", side_effect=PermissionError("read-only")):
            with pytest.raises(BackingStoreError):
                await file_repository.store(test_url, "nope")

        assert await file_repository.find_token(test_url) is None
        assert await file_repository.next_id() == 0

    @pytest.mark.asyncio
    async def test_cancelled_store_keeps_file_and_memory_in_step(self, file_repository):
        """Test that a store cancelled during the file append stays consistent."""
        test_url = "https://example.com"
        started = threading.Event()
        release = threading.Event()
        real_append = file_repository._append

        def slow_append(mapping):
            started.set()
            release.wait(timeout=5)
            real_append(mapping)

        with patch.object(file_repository, "_append", side_effect=slow_append):
            task = asyncio.create_task(file_repository.store(test_url, "AAAA"))
            await asyncio.to_thread(started.wait, 5)
            task.cancel()
            await asyncio.sleep(0)
            release.set()

            with pytest.raises(asyncio.CancelledError):
                await task

        assert await file_repository.find_token(test_url) == "AAAA"
        with pytest.raises(DuplicateURLError):
            await file_repository.store(test_url, "BBBB")

        lines = file_repository.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1

        reopened = FileURLRepository(file_repository.path)
        await reopened.open()
        assert await reopened.find_token(test_url) == "AAAA"
        assert await reopened.next_id() == 1
