"""Rollback and merge operators."""

from promptline.history.operations.merge import MergeOperator, can_fast_forward
from promptline.history.operations.rollback import RollbackOperator

__all__ = ["MergeOperator", "RollbackOperator", "can_fast_forward"]
