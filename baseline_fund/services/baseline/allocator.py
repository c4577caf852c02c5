"""
Allocator - converts aggregated baseline votes into fund allocations.

Weight per project = vote_count * avg_score / avg_rank: more agreeing agents,
higher authorizing baseline scores and better (lower) ranks all increase the
share. Each eligible project receives weight / total_weight of the pool.
"""

from typing import List, Optional, Sequence

from baseline_fund.backend.models import AllocationResult, ProjectResult
from baseline_fund.services.baseline.exceptions import (
    DivisionUndefinedError,
    InvalidInputError,
)

SUMMARY_RULE = "=" * 50


def _format_amount(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text or "0"


def calculate_allocations(
    results: Sequence[ProjectResult],
    pool_amount: float,
    min_votes: int = 1,
    top_n: Optional[int] = None,
) -> List[AllocationResult]:
    """
    Split `pool_amount` across projects in proportion to their weight.

    Args:
        results: Aggregated vote results per project
        pool_amount: Total SOL available for allocation, must be positive
        min_votes: Projects with fewer votes are excluded
        top_n: Keep only the first N allocations. The kept amounts are not
            re-normalized, so they may sum to less than the pool.

    Returns:
        List[AllocationResult]: Allocations sorted by amount, highest first.
        Empty if no project has enough votes.

    Raises:
        InvalidInputError: If pool_amount, min_votes or top_n is out of range
        DivisionUndefinedError: If the eligible projects' total weight is zero
    """
    if pool_amount is None or pool_amount <= 0:
        raise InvalidInputError(
            "poolAmount must be positive", field="poolAmount", pool_amount=pool_amount
        )
    if min_votes < 1:
        raise InvalidInputError("minVotes must be at least 1", field="minVotes")
    if top_n is not None and top_n < 1:
        raise InvalidInputError("topN must be at least 1", field="topN")

    eligible = [r for r in results if r.vote_count >= min_votes]
    if not eligible:
        return []

    weights = []
    for project in eligible:
        if project.avg_rank == 0:
            raise DivisionUndefinedError(
                f"Average rank of {project.project_id} is zero",
                {"project_id": project.project_id},
            )
        weights.append((project.vote_count * project.avg_score) / project.avg_rank)

    total_weight = sum(weights)
    if total_weight == 0:
        raise DivisionUndefinedError(
            "Total allocation weight is zero",
            {"eligible_projects": [p.project_id for p in eligible]},
        )

    allocations = [
        AllocationResult(
            project_id=project.project_id,
            allocation=round((weight / total_weight) * pool_amount, 4),
            vote_count=project.vote_count,
            avg_score=project.avg_score,
            avg_rank=project.avg_rank,
            allocation_pct=round((weight / total_weight) * 100, 2),
        )
        for project, weight in zip(eligible, weights)
    ]
    allocations.sort(key=lambda a: a.allocation, reverse=True)

    if top_n is not None and top_n < len(allocations):
        return allocations[:top_n]
    return allocations


def validate_allocations(
    allocations: Sequence[AllocationResult],
    pool_amount: float,
    tolerance: float = 0.01,
) -> bool:
    """Check that allocations sum to the pool within `tolerance`."""
    total = sum(a.allocation for a in allocations)
    return abs(total - pool_amount) <= tolerance


def allocation_summary(
    results: Sequence[ProjectResult],
    pool_amount: float,
    min_votes: int = 1,
    top_n: Optional[int] = None,
) -> str:
    """Render the allocations for `results` as a plain-text report."""
    allocations = calculate_allocations(
        results, pool_amount, min_votes=min_votes, top_n=top_n
    )
    if not allocations:
        return "No projects meet the minimum vote threshold."

    lines = [
        f"Fund Allocation ({_format_amount(pool_amount)} SOL pool)",
        SUMMARY_RULE,
        "",
    ]

    total = 0.0
    for alloc in allocations:
        lines.extend(
            [
                alloc.project_id,
                f"  Allocation: {_format_amount(alloc.allocation)} SOL ({alloc.allocation_pct:g}%)",
                f"  Votes: {alloc.vote_count} | Avg Score: {alloc.avg_score:.1f} | Avg Rank: {alloc.avg_rank:.1f}",
                "",
            ]
        )
        total += alloc.allocation

    lines.append(SUMMARY_RULE)
    lines.append(f"Total Allocated: {total:.4f} SOL")

    return "\n".join(lines)
