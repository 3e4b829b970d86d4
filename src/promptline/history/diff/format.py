"""Renderers for line diffs.

This module turns a TextDiff into the unified-diff text shown by the command
layer, or into rows for a two-column view.
"""

from typing import Optional

from promptline.history.enums import DiffLineTag, LineChangeType
from promptline.history.models import (
    DiffLine,
    RevisionDiff,
    SideBySideDiff,
    SideBySideRow,
    TextDiff,
)


def _default_labels(diff: TextDiff) -> tuple[str, str]:
    if isinstance(diff, RevisionDiff):
        return (
            f"{diff.document_id}@{diff.from_revision_number}",
            f"{diff.document_id}@{diff.to_revision_number}",
        )
    return "old", "new"


def format_unified(
    diff: TextDiff,
    header: bool = True,
    from_label: Optional[str] = None,
    to_label: Optional[str] = None,
) -> str:
    """Render a diff in unified format.

    Lines are prefixed with " " (context), "-" (removed) or "+" (added), and
    each hunk starts with an "@@ -start,count +start,count @@" header.

    Args:
        diff: Diff to render
        header: Whether to start with "---" and "+++" file lines
        from_label: Label for the old side (default: document@revision or "old")
        to_label: Label for the new side (default: document@revision or "new")

    Returns:
        Unified diff text, empty when there are no changes and no header

    Example:
        >>> print(format_unified(diff_text("hi\\n", "hello\\n")))
        --- old
        +++ new
        @@ -1,1 +1,1 @@
        -hi
        +hello
    """
    default_from, default_to = _default_labels(diff)
    output: list[str] = []

    if header:
        output.append(f"--- {from_label or default_from}")
        output.append(f"+++ {to_label or default_to}")

    for hunk in diff.hunks:
        output.append(
            f"@@ -{hunk.old_start},{hunk.old_line_count} "
            f"+{hunk.new_start},{hunk.new_line_count} @@"
        )
        output.extend(f"{line.prefix}{line.text}" for line in hunk.lines)

    return "\n".join(output)


def _pair_rows(removed: list[DiffLine], added: list[DiffLine]) -> list[SideBySideRow]:
    """Pair a run of removals with the additions that replace it."""
    rows = []
    for index in range(max(len(removed), len(added))):
        old = removed[index] if index < len(removed) else None
        new = added[index] if index < len(added) else None
        if old and new:
            change = LineChangeType.MODIFIED
        elif old:
            change = LineChangeType.REMOVED
        else:
            change = LineChangeType.ADDED
        rows.append(
            SideBySideRow(
                change=change,
                left=old.text if old else None,
                right=new.text if new else None,
                left_line=old.old_line_number if old else None,
                right_line=new.new_line_number if new else None,
            )
        )
    return rows


def format_side_by_side(diff: TextDiff) -> SideBySideDiff:
    """Arrange a diff as rows of old and new lines.

    A run of removed lines directly followed by added lines is shown as
    modified rows, pairing the lines in order; leftovers on either side become
    plain removed or added rows.

    Args:
        diff: Diff to arrange

    Returns:
        Side-by-side rows covering the whole edit script
    """
    rows: list[SideBySideRow] = []
    removed: list[DiffLine] = []
    added: list[DiffLine] = []

    for line in diff.lines:
        if line.tag == DiffLineTag.REMOVE:
            if added:
                rows.extend(_pair_rows(removed, added))
                removed, added = [], []
            removed.append(line)
        elif line.tag == DiffLineTag.ADD:
            added.append(line)
        else:
            rows.extend(_pair_rows(removed, added))
            removed, added = [], []
            rows.append(
                SideBySideRow(
                    change=LineChangeType.UNCHANGED,
                    left=line.text,
                    right=line.text,
                    left_line=line.old_line_number,
                    right_line=line.new_line_number,
                )
            )

    rows.extend(_pair_rows(removed, added))
    return SideBySideDiff(rows=rows)
