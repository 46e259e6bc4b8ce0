"""Tests for name conflict detection and resolution."""

from __future__ import annotations

from filebrowser_client import check_conflict, generate_name, resolve_conflict
from filebrowser_client.models import (
    ConflictAction,
    ResolutionPolicy,
    ResourceEntry,
    ScopedPath,
    TransferItem,
)


def _item(name: str) -> TransferItem:
    return TransferItem(
        source=ScopedPath(None, f"/src/{name}"),
        destination=ScopedPath(None, f"/dst/{name}"),
        name=name,
    )


def _entry(name: str, index: int = 0) -> ResourceEntry:
    return ResourceEntry(name=name, is_dir=False, path=f"/dst/{name}", index=index)


class TestGenerateName:
    """Tests for generate_name."""

    def test_first_copy(self) -> None:
        """Test a plain name gets the (1) suffix before the extension."""
        assert generate_name("report.pdf", ["report.pdf"]) == "report (1).pdf"

    def test_increments_existing_number(self) -> None:
        """Test an already numbered name continues from its number."""
        existing = ["report.pdf", "report (1).pdf"]

        assert generate_name("report (1).pdf", existing) == "report (2).pdf"

    def test_skips_taken_numbers(self) -> None:
        """Test numbers already in use are skipped."""
        existing = {"notes.txt", "notes (1).txt", "notes (2).txt"}

        assert generate_name("notes.txt", existing) == "notes (3).txt"

    def test_name_without_extension(self) -> None:
        """Test names without an extension are numbered at the end."""
        assert generate_name("Makefile", ["Makefile"]) == "Makefile (1)"
        assert generate_name("photos (4)", ["photos (4)"]) == "photos (5)"

    def test_only_last_extension_is_kept_apart(self) -> None:
        """Test multi-dot names number before the final extension."""
        assert generate_name("archive.tar.gz", ["archive.tar.gz"]) == "archive.tar (1).gz"

    def test_result_never_taken(self) -> None:
        """Test the generated name is absent from the existing names."""
        existing = {f"a ({n}).txt" for n in range(1, 20)} | {"a.txt"}

        name = generate_name("a.txt", existing)

        assert name not in existing
        assert name == "a (20).txt"


class TestCheckConflict:
    """Tests for check_conflict."""

    def test_detects_duplicate(self) -> None:
        """Test a name present at the destination is a conflict."""
        result = check_conflict([_item("a.txt")], [_entry("a.txt")])

        assert result.has_conflict
        assert result.duplicate_names == ("a.txt",)
        assert result.suggested_name is not None
        assert result.suggested_name not in result.existing_names

    def test_no_conflict(self) -> None:
        """Test distinct names do not conflict."""
        result = check_conflict([_item("b.txt")], [_entry("a.txt")])

        assert not result.has_conflict
        assert result.duplicate_names == ()
        assert result.suggested_name is None

    def test_match_is_case_sensitive(self) -> None:
        """Test names differing only by case do not conflict."""
        result = check_conflict([_item("A.txt")], [_entry("a.txt")])

        assert not result.has_conflict

    def test_no_suggestion_for_several_duplicates(self) -> None:
        """Test a suggested name is only offered for a single duplicate."""
        result = check_conflict(
            [_item("a.txt"), _item("b.txt")],
            [_entry("a.txt", 0), _entry("b.txt", 1)],
        )

        assert result.duplicate_names == ("a.txt", "b.txt")
        assert result.suggested_name is None

    def test_accepts_plain_names(self) -> None:
        """Test strings work for both sides."""
        assert check_conflict(["x"], ["x", "y"]).has_conflict


class TestResolveConflict:
    """Tests for resolve_conflict."""

    def test_overwrite_wins_over_rename(self) -> None:
        """Test overwrite takes precedence when both flags are set."""
        result = check_conflict([_item("a.txt")], [_entry("a.txt")])

        resolution = resolve_conflict(result, ResolutionPolicy(overwrite=True, rename=True))

        assert resolution.action is ConflictAction.OVERWRITE
        assert resolution.resolved_names == ("a.txt",)

    def test_rename_generates_unique_names(self) -> None:
        """Test renamed entries never collide with each other or the destination."""
        result = check_conflict(
            [_item("a.txt"), _item("a (1).txt")],
            [_entry("a.txt", 0), _entry("a (1).txt", 1)],
        )

        resolution = resolve_conflict(result, ResolutionPolicy(rename=True))

        assert resolution.action is ConflictAction.RENAME
        assert resolution.resolved_names == ("a (2).txt", "a (3).txt")

    def test_rename_with_custom_name(self) -> None:
        """Test a custom name replaces the generated one."""
        result = check_conflict([_item("a.txt")], [_entry("a.txt")])

        resolution = resolve_conflict(
            result, ResolutionPolicy(rename=True, custom_name="b.txt")
        )

        assert resolution.resolved_names == ("b.txt",)

    def test_skip_without_policy(self) -> None:
        """Test no policy means skip with no names."""
        result = check_conflict([_item("a.txt")], [_entry("a.txt")])

        resolution = resolve_conflict(result)

        assert resolution.action is ConflictAction.SKIP
        assert resolution.resolved_names == ()
