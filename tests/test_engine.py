"""Unit tests for HostsManager and the apply entry point."""

import logging
import re
from pathlib import Path

import pytest

from hostm.config import Settings
from hostm.engine import DomainExistsError, DomainNotFoundError, HostsManager, apply
from hostm.models import MutationOutcome, MutationRequest
from hostm.storage import HostsNotFoundError, HostsWriteError, MemoryStorage

BASE = "127.0.0.1 localhost\n# dev\n10.0.0.1 a.com\n"


def _manager(content: str = BASE, **settings) -> tuple[HostsManager, MemoryStorage]:
    storage = MemoryStorage(content)
    settings.setdefault("timestamp", False)
    return HostsManager(storage, Settings(**settings)), storage


class TestHostsManagerApply:
    def test_upsert_existing(self):
        """
        Given a.com is mapped
        When apply is called with a new IP
        Then the line is rewritten in place and the storage written once
        """
        manager, storage = _manager()
        result = manager.apply(MutationRequest(domain="a.com", ip="10.0.0.9"))
        assert result.outcome is MutationOutcome.REPLACED
        assert storage.writes == ["127.0.0.1 localhost\n# dev\n10.0.0.9 a.com # updated by hostm\n"]

    def test_upsert_missing_appends(self):
        manager, storage = _manager()
        result = manager.apply(MutationRequest(domain="b.com", ip="10.0.0.2"))
        assert result.outcome is MutationOutcome.APPENDED
        assert storage.read() == BASE + "10.0.0.2 b.com # created by hostm\n"

    def test_delete(self):
        manager, storage = _manager()
        result = manager.apply(MutationRequest(domain="a.com"))
        assert result.outcome is MutationOutcome.DELETED
        assert storage.read() == "127.0.0.1 localhost\n# dev\n"

    def test_delete_missing_does_not_write(self, caplog):
        """
        Given the domain is not mapped
        When it is deleted
        Then nothing is written and the skip is logged
        """
        caplog.set_level(logging.INFO, logger="hostm.engine")
        manager, storage = _manager()
        result = manager.apply(MutationRequest(domain="b.com"))
        assert result.outcome is MutationOutcome.UNCHANGED
        assert storage.writes == []
        assert "nothing written" in caplog.text

    def test_timestamp_is_added_when_enabled(self):
        manager, storage = _manager(timestamp=True)
        manager.set("a.com", "10.0.0.9")
        last_line = storage.read().splitlines()[-1]
        assert re.fullmatch(
            r"10\.0\.0\.9 a\.com # updated by hostm \d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}",
            last_line,
        )

    def test_tool_name_from_settings(self):
        manager, storage = _manager(tool_name="devbox")
        manager.set("b.com", "10.0.0.2")
        assert storage.read().endswith("10.0.0.2 b.com # created by devbox\n")

    def test_rereads_storage_on_every_call(self):
        """
        Given the backing content changes between calls
        When apply is called again
        Then the new content is used
        """
        manager, storage = _manager()
        storage.write("10.0.0.5 c.com\n")
        manager.set("c.com", "10.0.0.6")
        assert storage.read() == "10.0.0.6 c.com # updated by hostm\n"


class TestHostsManagerStrict:
    def test_create_new_domain(self):
        manager, storage = _manager()
        result = manager.create("b.com", "10.0.0.2")
        assert result.outcome is MutationOutcome.APPENDED
        assert storage.read().endswith("10.0.0.2 b.com # created by hostm\n")

    def test_create_existing_raises(self):
        manager, storage = _manager()
        with pytest.raises(DomainExistsError, match="already exists"):
            manager.create("a.com", "10.0.0.2")
        assert storage.writes == []

    def test_update_existing(self):
        manager, storage = _manager()
        result = manager.update("a.com", "10.0.0.9")
        assert result.outcome is MutationOutcome.REPLACED
        assert result.line_numbers == [3]

    def test_update_missing_raises(self):
        manager, storage = _manager()
        with pytest.raises(DomainNotFoundError, match="does not exist"):
            manager.update("b.com", "10.0.0.2")
        assert storage.writes == []

    def test_update_does_not_match_substrings(self):
        manager, _ = _manager("10.0.0.1 notexample.com\n")
        with pytest.raises(DomainNotFoundError):
            manager.update("example.com", "10.0.0.2")

    def test_strict_delete_missing_raises(self):
        manager, storage = _manager()
        with pytest.raises(DomainNotFoundError):
            manager.delete("b.com", strict=True)
        assert storage.writes == []

    def test_lenient_delete_missing_is_noop(self):
        manager, storage = _manager()
        assert manager.delete("b.com").outcome is MutationOutcome.UNCHANGED
        assert storage.writes == []


class TestHostsManagerSearch:
    def test_returns_numbered_lines(self):
        manager, _ = _manager()
        assert manager.search("a.com") == [(3, "10.0.0.1 a.com")]

    def test_matches_comments_too(self):
        manager, _ = _manager()
        assert manager.search("dev") == [(2, "# dev")]


class TestApplyEntryPoint:
    def test_upsert_replaces_in_place(self, tmp_path: Path):
        """
        Given "10.0.0.1 a.com" followed by "b.com 10.0.0.2"
        When apply upserts a.com to 10.0.0.9
        Then line 1 has the new IP and line 2 is byte-identical
        """
        hosts = tmp_path / "hosts"
        hosts.write_text("10.0.0.1 a.com\nb.com 10.0.0.2\n")

        apply("a.com", "10.0.0.9", hosts)

        first, second = hosts.read_text().splitlines()
        assert first.startswith("10.0.0.9 a.com # updated by hostm")
        assert second == "b.com 10.0.0.2"

    def test_mixed_line_endings_update_in_place(self, tmp_path: Path):
        """
        Given a file mixing LF and CRLF endings with a.com on the CRLF line
        When apply upserts a.com
        Then the mapping is replaced, not duplicated, and other bytes are kept
        """
        hosts = tmp_path / "hosts"
        hosts.write_bytes(b"127.0.0.1 localhost\n10.0.0.1 a.com\r\n10.0.0.2 b.com\n")

        result = apply("a.com", "10.0.0.9", hosts)

        assert result.outcome is MutationOutcome.REPLACED
        first, second, third = hosts.read_bytes().split(b"\n")[:3]
        assert first == b"127.0.0.1 localhost"
        assert second.startswith(b"10.0.0.9 a.com # updated by hostm")
        assert second.endswith(b"\r")
        assert third == b"10.0.0.2 b.com"
        assert hosts.read_bytes().count(b"a.com") == 1
        assert hosts.read_bytes().endswith(b"10.0.0.2 b.com\n")

    def test_append_on_miss(self, tmp_path: Path):
        hosts = tmp_path / "hosts"
        original = "127.0.0.1 localhost\n\n# comment\n"
        hosts.write_text(original)

        apply("new.com", "10.0.0.5", str(hosts))

        content = hosts.read_text()
        assert content.startswith(original)
        added = content[len(original):]
        assert added.count("\n") == 1
        assert added.startswith("10.0.0.5 new.com # created by hostm")

    def test_delete_twice_is_idempotent(self, tmp_path: Path):
        hosts = tmp_path / "hosts"
        hosts.write_text("127.0.0.1 localhost\n10.0.0.1 a.com\n")

        apply("a.com", None, hosts)
        after_first = hosts.read_bytes()
        apply("a.com", None, hosts)

        assert hosts.read_bytes() == after_first == b"127.0.0.1 localhost\n"

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(HostsNotFoundError):
            apply("a.com", "10.0.0.1", tmp_path / "missing")

    def test_failed_replace_keeps_original(self, tmp_path: Path, monkeypatch):
        """
        Given the atomic replace fails
        When apply is called
        Then HostsWriteError propagates and the file content is unchanged
        """
        hosts = tmp_path / "hosts"
        hosts.write_text("10.0.0.1 a.com\n")

        def broken_replace(src, dst):
            raise OSError(18, "Invalid cross-device link")

        monkeypatch.setattr("hostm.storage.os.replace", broken_replace)

        with pytest.raises(HostsWriteError):
            apply("a.com", "10.0.0.9", hosts)

        assert hosts.read_text() == "10.0.0.1 a.com\n"
