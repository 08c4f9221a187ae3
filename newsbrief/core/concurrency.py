"""
Settle-all helpers for independent async fan-out.

Every branch runs to completion or failure without cancelling its siblings;
the caller receives one typed outcome per branch and merges only the
successes.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, List, Optional, Sequence, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BranchOutcome(Generic[T]):
    label: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(branches: Sequence[Tuple[str, Awaitable[T]]]) -> List[BranchOutcome[T]]:
    """
    Run labelled awaitables concurrently and collect every outcome.

    Args:
        branches: (label, awaitable) pairs; labels only serve logging and tests

    Returns:
        One BranchOutcome per branch, in input order
    """
    if not branches:
        return []

    results = await asyncio.gather(*(aw for _, aw in branches), return_exceptions=True)

    outcomes: List[BranchOutcome[T]] = []
    for (label, _), result in zip(branches, results):
        if isinstance(result, BaseException):
            logger.warning("branch_failed", branch=label, error=str(result) or type(result).__name__)
            outcomes.append(BranchOutcome(label=label, error=result))
        else:
            outcomes.append(BranchOutcome(label=label, value=result))
    return outcomes


def successful_values(outcomes: Sequence[BranchOutcome[Any]]) -> List[Any]:
    return [outcome.value for outcome in outcomes if outcome.ok]
