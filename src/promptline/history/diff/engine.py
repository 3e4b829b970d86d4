"""Line diff engine for document revisions.

This module implements the Myers O(ND) shortest-edit-script algorithm over
lines and groups the resulting edit script into unified-diff hunks. A
shortest edit script keeps the longest common subsequence unchanged, so
diff(a, b) and diff(b, a) always agree on the unchanged count and swap the
added and removed counts. difflib's SequenceMatcher does not guarantee a
minimal script, hence the dedicated implementation.
"""

import logging
from typing import Callable, NamedTuple, Optional, Sequence

from promptline.history.enums import DiffLineTag
from promptline.history.models import DiffHunk, DiffLine, DiffStats, RevisionDiff, TextDiff
from promptline.history.revisions.store import require_revision
from promptline.history.storage.repository import HistoryRepository

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3


class _Edit(NamedTuple):
    """One step of the edit script.

    old_index and new_index count the old and new lines consumed before
    this step.
    """

    tag: DiffLineTag
    old_index: int
    new_index: int


def split_lines(content: str) -> list[str]:
    """Split content into lines without line terminators.

    A trailing newline does not produce an extra empty line, and empty content
    has no lines.

    Args:
        content: Text to split

    Returns:
        List of lines
    """
    return content.splitlines()


def _collapse_whitespace(line: str) -> str:
    return " ".join(line.split())


def _shortest_edit(old_keys: Sequence[str], new_keys: Sequence[str]) -> list[_Edit]:
    """Compute a shortest edit script with the Myers algorithm.

    Lines that occur on only one side can never be unchanged, so they are set
    aside before the search and come back as plain removals and additions.
    A full rewrite therefore costs linear time.

    Args:
        old_keys: Comparison keys of the old lines
        new_keys: Comparison keys of the new lines

    Returns:
        Edit script in order, with removals before additions in each change run
    """
    n, m = len(old_keys), len(new_keys)
    old_set, new_set = set(old_keys), set(new_keys)
    old_index = [i for i, key in enumerate(old_keys) if key in new_set]
    new_index = [j for j, key in enumerate(new_keys) if key in old_set]

    matches = [
        (old_index[x], new_index[y])
        for x, y in _myers_matches(
            [old_keys[i] for i in old_index], [new_keys[j] for j in new_index]
        )
    ]

    edits: list[_Edit] = []
    x = y = 0
    for match_x, match_y in matches + [(n, m)]:
        edits.extend(_Edit(DiffLineTag.REMOVE, i, y) for i in range(x, match_x))
        edits.extend(_Edit(DiffLineTag.ADD, match_x, j) for j in range(y, match_y))
        if match_x < n:
            edits.append(_Edit(DiffLineTag.CONTEXT, match_x, match_y))
        x, y = match_x + 1, match_y + 1
    return edits


def _myers_matches(old_keys: Sequence[str], new_keys: Sequence[str]) -> list[tuple[int, int]]:
    """Return the matched (old, new) index pairs of a shortest edit script."""
    n, m = len(old_keys), len(new_keys)
    max_d = n + m
    offset = max_d + 1
    # v[offset + k] holds the furthest x reached on diagonal k
    v = [0] * (2 * max_d + 3)
    # trace[d] keeps diagonals -d-1 .. d+1, the only ones step d reads
    trace: list[list[int]] = []

    for d in range(max_d + 1):
        trace.append(v[offset - d - 1 : offset + d + 2])
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1]):
                x = v[offset + k + 1]
            else:
                x = v[offset + k - 1] + 1
            y = x - k
            while x < n and y < m and old_keys[x] == new_keys[y]:
                x += 1
                y += 1
            v[offset + k] = x
            if x >= n and y >= m:
                return _backtrack(trace, n, m)

    return []


def _backtrack(trace: list[list[int]], n: int, m: int) -> list[tuple[int, int]]:
    """Walk the Myers trace back from (n, m) to recover the matched lines."""
    matches: list[tuple[int, int]] = []
    x, y = n, m

    for d in range(len(trace) - 1, -1, -1):
        v = trace[d]
        base = d + 1
        k = x - y
        if k == -d or (k != d and v[base + k - 1] < v[base + k + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = v[base + prev_k]
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            x -= 1
            y -= 1
            matches.append((x, y))

        x, y = prev_x, prev_y

    matches.reverse()
    return matches


def _to_line(edit: _Edit, old_lines: Sequence[str], new_lines: Sequence[str]) -> DiffLine:
    if edit.tag == DiffLineTag.ADD:
        return DiffLine(
            tag=edit.tag, text=new_lines[edit.new_index], new_line_number=edit.new_index + 1
        )
    if edit.tag == DiffLineTag.REMOVE:
        return DiffLine(
            tag=edit.tag, text=old_lines[edit.old_index], old_line_number=edit.old_index + 1
        )
    return DiffLine(
        tag=edit.tag,
        text=new_lines[edit.new_index],
        old_line_number=edit.old_index + 1,
        new_line_number=edit.new_index + 1,
    )


def _build_hunks(edits: Sequence[_Edit], lines: Sequence[DiffLine], context: int) -> list[DiffHunk]:
    """Group the edit script into hunks with surrounding context.

    Changes separated by at most 2 * context unchanged lines share a hunk.

    Args:
        edits: Edit script
        lines: DiffLine for each edit, in the same order
        context: Number of context lines around each change

    Returns:
        List of hunks in order
    """
    changes = [i for i, edit in enumerate(edits) if edit.tag != DiffLineTag.CONTEXT]
    if not changes:
        return []

    groups: list[tuple[int, int]] = []
    first = last = changes[0]
    for position in changes[1:]:
        if position - last - 1 > 2 * context:
            groups.append((first, last))
            first = position
        last = position
    groups.append((first, last))

    hunks = []
    for first, last in groups:
        start = max(0, first - context)
        end = min(len(edits), last + context + 1)
        window = edits[start:end]

        old_count = sum(1 for e in window if e.tag != DiffLineTag.ADD)
        new_count = sum(1 for e in window if e.tag != DiffLineTag.REMOVE)
        old_start = window[0].old_index + 1
        new_start = window[0].new_index + 1
        # A side with no lines reports the line before the change
        if old_count == 0:
            old_start -= 1
        if new_count == 0:
            new_start -= 1

        hunks.append(
            DiffHunk(
                old_start=old_start,
                old_line_count=old_count,
                new_start=new_start,
                new_line_count=new_count,
                lines=list(lines[start:end]),
            )
        )
    return hunks


def diff_text(
    old_content: str,
    new_content: str,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    ignore_whitespace: bool = False,
) -> TextDiff:
    """Compute the line diff between two texts.

    Args:
        old_content: Original text
        new_content: Changed text
        context_lines: Unchanged lines shown around each change (default: 3)
        ignore_whitespace: Compare lines with runs of whitespace collapsed

    Returns:
        Hunks, line statistics, and the complete edit script

    Raises:
        ValueError: If context_lines is negative
    """
    if context_lines < 0:
        raise ValueError("context_lines must be non-negative")

    old_lines = split_lines(old_content)
    new_lines = split_lines(new_content)

    key: Callable[[str], str] = _collapse_whitespace if ignore_whitespace else str
    edits = _shortest_edit([key(line) for line in old_lines], [key(line) for line in new_lines])
    lines = [_to_line(edit, old_lines, new_lines) for edit in edits]

    stats = DiffStats(
        added=sum(1 for line in lines if line.tag == DiffLineTag.ADD),
        removed=sum(1 for line in lines if line.tag == DiffLineTag.REMOVE),
        unchanged=sum(1 for line in lines if line.tag == DiffLineTag.CONTEXT),
    )
    return TextDiff(hunks=_build_hunks(edits, lines, context_lines), stats=stats, lines=lines)


class DiffEngine:
    """Computes diffs between two revisions of a document.

    Reading the two revisions is the only storage access; the diff itself is
    a pure function of their content.

    Attributes:
        _repository: Storage repository to read revisions from
        context_lines: Unchanged lines shown around each change
        ignore_whitespace: Whether to compare lines with whitespace collapsed
    """

    def __init__(
        self,
        repository: HistoryRepository,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        ignore_whitespace: bool = False,
    ) -> None:
        """Initialize the diff engine.

        Args:
            repository: Storage repository to read revisions from
            context_lines: Default number of context lines
            ignore_whitespace: Default whitespace handling
        """
        self._repository = repository
        self.context_lines = context_lines
        self.ignore_whitespace = ignore_whitespace

    async def compute_diff(
        self,
        document_id: str,
        from_revision_number: int,
        to_revision_number: int,
        context_lines: Optional[int] = None,
        ignore_whitespace: Optional[bool] = None,
    ) -> RevisionDiff:
        """Compute the diff from one revision to another.

        Args:
            document_id: Document identifier
            from_revision_number: Revision treated as the old side
            to_revision_number: Revision treated as the new side
            context_lines: Override for the engine's context lines
            ignore_whitespace: Override for the engine's whitespace handling

        Returns:
            Diff between the two revisions

        Raises:
            NotFoundError: If either revision does not exist for the document
        """
        async with self._repository.transaction() as tx:
            old = await require_revision(tx, document_id, from_revision_number)
            new = await require_revision(tx, document_id, to_revision_number)

        text_diff = diff_text(
            old.content,
            new.content,
            context_lines=self.context_lines if context_lines is None else context_lines,
            ignore_whitespace=(
                self.ignore_whitespace if ignore_whitespace is None else ignore_whitespace
            ),
        )

        logger.debug(
            f"Diffed document {document_id} revisions {from_revision_number}"
            f"..{to_revision_number}: +{text_diff.stats.added} -{text_diff.stats.removed}"
        )
        return RevisionDiff(
            document_id=document_id,
            from_revision_number=from_revision_number,
            to_revision_number=to_revision_number,
            hunks=text_diff.hunks,
            stats=text_diff.stats,
            lines=text_diff.lines,
        )
