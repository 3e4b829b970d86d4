"""Tests for diff renderers."""

from promptline.history.diff.engine import diff_text
from promptline.history.diff.format import format_side_by_side, format_unified
from promptline.history.enums import LineChangeType
from promptline.history.models import RevisionDiff


class TestFormatUnified:
    """Tests for format_unified."""

    def test_simple_replacement(self) -> None:
        """Should render headers, hunk header and prefixed lines."""
        output = format_unified(diff_text("hi\n", "hello\n"))

        assert output == "--- old\n+++ new\n@@ -1,1 +1,1 @@\n-hi\n+hello"

    def test_custom_labels(self) -> None:
        """Labels should replace the default file names."""
        output = format_unified(diff_text("a", "b"), from_label="v1", to_label="v2")

        assert output.splitlines()[:2] == ["--- v1", "+++ v2"]

    def test_revision_labels(self) -> None:
        """Revision diffs should be labelled with document and revision."""
        text_diff = diff_text("a", "b")
        diff = RevisionDiff(
            document_id="doc-1",
            from_revision_number=1,
            to_revision_number=3,
            hunks=text_diff.hunks,
            stats=text_diff.stats,
            lines=text_diff.lines,
        )

        assert format_unified(diff).splitlines()[:2] == ["--- doc-1@1", "+++ doc-1@3"]

    def test_without_header(self) -> None:
        """header=False should start with the first hunk."""
        output = format_unified(diff_text("a\nb\nc", "a\nb\nX\nc"), header=False)

        assert output == "@@ -1,3 +1,4 @@\n a\n b\n+X\n c"

    def test_no_changes(self) -> None:
        """Identical texts render only the header, or nothing without it."""
        diff = diff_text("same", "same")

        assert format_unified(diff) == "--- old\n+++ new"
        assert format_unified(diff, header=False) == ""

    def test_multiple_hunks(self) -> None:
        """Every hunk should get its own header."""
        old = [f"line {i}" for i in range(1, 21)]
        new = list(old)
        new[0] = "first"
        new[19] = "last"

        output = format_unified(diff_text("\n".join(old), "\n".join(new)), header=False)

        headers = [line for line in output.splitlines() if line.startswith("@@")]
        assert headers == ["@@ -1,4 +1,4 @@", "@@ -17,4 +17,4 @@"]


class TestFormatSideBySide:
    """Tests for format_side_by_side."""

    def test_pairs_replacements(self) -> None:
        """A removal followed by an addition should form a modified row."""
        result = format_side_by_side(diff_text("a\nb\nc", "a\nB\nc\nd"))

        assert [row.change for row in result.rows] == [
            LineChangeType.UNCHANGED,
            LineChangeType.MODIFIED,
            LineChangeType.UNCHANGED,
            LineChangeType.ADDED,
        ]
        modified = result.rows[1]
        assert (modified.left, modified.right) == ("b", "B")
        assert (modified.left_line, modified.right_line) == (2, 2)
        assert result.left == ["a", "b", "c", ""]
        assert result.right == ["a", "B", "c", "d"]

    def test_leftover_removals(self) -> None:
        """Removals without a matching addition should stay removed rows."""
        result = format_side_by_side(diff_text("x\ny", "z"))

        assert [row.change for row in result.rows] == [
            LineChangeType.MODIFIED,
            LineChangeType.REMOVED,
        ]
        assert result.rows[1].right is None

    def test_pure_removal(self) -> None:
        """Deleting all lines should produce removed rows only."""
        result = format_side_by_side(diff_text("a\nb", ""))

        assert [row.change for row in result.rows] == [LineChangeType.REMOVED] * 2
        assert [row.left_line for row in result.rows] == [1, 2]

    def test_unchanged_rows_keep_both_line_numbers(self) -> None:
        """Unchanged rows should report their line on each side."""
        result = format_side_by_side(diff_text("a\nb", "x\na\nb"))

        assert result.rows[0].change == LineChangeType.ADDED
        assert [(row.left_line, row.right_line) for row in result.rows[1:]] == [(1, 2), (2, 3)]
