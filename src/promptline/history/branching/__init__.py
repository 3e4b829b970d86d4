"""Branch registry for document history."""

from promptline.history.branching.registry import BranchRegistry

__all__ = ["BranchRegistry"]
