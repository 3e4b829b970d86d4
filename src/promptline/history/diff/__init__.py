"""Line diffs between document revisions.

This package provides the Myers diff engine and the unified and
side-by-side renderers.
"""

from promptline.history.diff.engine import DiffEngine, diff_text
from promptline.history.diff.format import format_side_by_side, format_unified

__all__ = [
    "DiffEngine",
    "diff_text",
    "format_side_by_side",
    "format_unified",
]
