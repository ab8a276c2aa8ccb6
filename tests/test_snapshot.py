"""Tests for monover.snapshot."""

from __future__ import annotations

import pytest

from monover.errors import SnapshotFormatError
from monover.snapshot import (
    SnapshotContext,
    SnapshotVersionGenerator,
    sanitize_branch,
    short_commit,
    snapshot_version,
)
from monover.versions import parse_version


class TestSanitizeBranch:
    @pytest.mark.parametrize(
        ("branch", "expected"),
        [
            ("feat/OAuth Login", "feat-oauth-login"),
            ("main", "main"),
            ("release//2.0", "release-2.0"),
            ("/leading/and/trailing/", "leading-and-trailing"),
            ("fix: weird_chars!", "fix-weird_chars"),
        ],
    )
    def test_sanitize(self, branch: str, expected: str) -> None:
        assert sanitize_branch(branch) == expected


class TestShortCommit:
    def test_truncates_to_seven(self) -> None:
        assert short_commit("abc1234def5678") == "abc1234"

    def test_short_input_kept(self) -> None:
        assert short_commit("abc") == "abc"


class TestSnapshotVersionGenerator:
    def test_branch_and_commit(self) -> None:
        generator = SnapshotVersionGenerator("{version}-{branch}.{commit}")
        context = SnapshotContext(
            version="1.2.3", branch="feat/OAuth Login", commit="abc1234def5678"
        )
        assert generator.generate(context) == "1.2.3-feat-oauth-login.abc1234"

    def test_timestamp(self) -> None:
        generator = SnapshotVersionGenerator("{version}-snapshot.{timestamp}")
        context = SnapshotContext(version="1.0.0", timestamp=1700000000)
        assert generator.generate(context) == "1.0.0-snapshot.1700000000"

    def test_timestamp_defaults_to_now(self) -> None:
        context = SnapshotContext(version="1.0.0")
        assert context.timestamp > 1_600_000_000

    def test_repeated_placeholder(self) -> None:
        generator = SnapshotVersionGenerator("{version}+{commit}.{commit}")
        context = SnapshotContext(version="1.0.0", commit="deadbeef")
        assert generator.generate(context) == "1.0.0+deadbee.deadbee"
        assert generator.placeholders == ("version", "commit")

    def test_missing_version_placeholder(self) -> None:
        with pytest.raises(SnapshotFormatError, match="version"):
            SnapshotVersionGenerator("{branch}-{commit}")

    def test_unsupported_placeholder(self) -> None:
        with pytest.raises(SnapshotFormatError, match="author"):
            SnapshotVersionGenerator("{version}-{author}")

    def test_empty_placeholder(self) -> None:
        with pytest.raises(SnapshotFormatError):
            SnapshotVersionGenerator("{version}-{}")

    def test_empty_template(self) -> None:
        with pytest.raises(SnapshotFormatError):
            SnapshotVersionGenerator("")


class TestSnapshotVersion:
    def test_attaches_prerelease(self) -> None:
        result = snapshot_version(parse_version("1.2.3"), "snapshot.abc1234")
        assert str(result) == "1.2.3-snapshot.abc1234"

    def test_invalid_identifier(self) -> None:
        with pytest.raises(SnapshotFormatError):
            snapshot_version(parse_version("1.2.3"), "bad identifier")
