import pytest

from baseline_fund.backend.models import ProjectResult
from baseline_fund.services.baseline.allocator import (
    allocation_summary,
    calculate_allocations,
    validate_allocations,
)
from baseline_fund.services.baseline.exceptions import (
    DivisionUndefinedError,
    InvalidInputError,
)


def _results(*rows):
    return [
        ProjectResult(project_id=p, vote_count=c, avg_score=s, avg_rank=r)
        for p, c, s, r in rows
    ]


def test_allocations_follow_votes_scores_and_ranks():
    results = _results(
        ("ProjectA", 3, 22, 1.3),
        ("ProjectB", 2, 21, 2.0),
        ("ProjectC", 1, 20, 3.0),
    )
    allocations = calculate_allocations(results, 10)

    assert [a.project_id for a in allocations] == ["ProjectA", "ProjectB", "ProjectC"]
    assert all(a.allocation > 0 and a.allocation_pct > 0 for a in allocations)
    assert allocations[0].vote_count == 3
    assert validate_allocations(allocations, 10)


def test_min_votes_excludes_projects():
    results = _results(("ProjectA", 3, 22, 1.0), ("ProjectB", 1, 29, 1.0))
    allocations = calculate_allocations(results, 10, min_votes=2)

    assert len(allocations) == 1
    assert allocations[0].project_id == "ProjectA"
    assert allocations[0].allocation == 10


def test_no_eligible_projects_is_empty():
    assert calculate_allocations([], 10) == []
    assert calculate_allocations(_results(("A", 1, 20, 1.0)), 10, min_votes=2) == []


def test_equal_weights_get_equal_allocations():
    results = _results(
        ("HighScore", 1, 30, 1.0),
        ("HighVotes", 3, 20, 2.0),
        ("LowBoth", 1, 20, 3.0),
    )
    allocations = {a.project_id: a for a in calculate_allocations(results, 100)}

    assert abs(allocations["HighScore"].allocation - allocations["HighVotes"].allocation) < 1
    assert allocations["LowBoth"].allocation < allocations["HighScore"].allocation / 2


def test_validate_allocations_tolerance():
    results = _results(("A", 1, 20, 1.0), ("B", 1, 20, 1.0), ("C", 1, 20, 1.0))
    allocations = calculate_allocations(results, 9.99)

    assert [a.allocation for a in allocations] == [3.33, 3.33, 3.33]
    assert validate_allocations(allocations, 9.99, 0.01) is True
    assert validate_allocations(allocations, 10.99, 0.01) is False


def test_single_project_takes_whole_pool():
    allocations = calculate_allocations(_results(("OnlyProject", 1, 20, 1.0)), 5)
    assert allocations[0].allocation == 5
    assert allocations[0].allocation_pct == 100


def test_top_n_truncates_without_renormalizing():
    results = _results(
        ("First", 5, 25, 1.0),
        ("Second", 4, 24, 1.5),
        ("Third", 3, 23, 2.0),
        ("Fourth", 2, 22, 2.5),
        ("Fifth", 1, 21, 3.0),
    )
    full = calculate_allocations(results, 10)
    top = calculate_allocations(results, 10, top_n=3)

    assert [a.project_id for a in top] == ["First", "Second", "Third"]
    assert top == full[:3]
    assert validate_allocations(top, 10) is False
    assert calculate_allocations(results, 10, top_n=10) == full


def test_allocations_are_deterministic():
    results = _results(("A", 2, 21.5, 1.5), ("B", 1, 23.3, 1.0), ("C", 4, 20.1, 2.2))
    assert calculate_allocations(results, 0.3) == calculate_allocations(results, 0.3)


def test_rounding_precision():
    results = _results(("A", 1, 20, 1.0), ("B", 2, 20, 1.0))
    allocations = calculate_allocations(results, 1)
    assert [a.project_id for a in allocations] == ["B", "A"]
    assert allocations[0].allocation == 0.6667
    assert allocations[0].allocation_pct == 66.67
    assert allocations[1].allocation == 0.3333
    assert allocations[1].allocation_pct == 33.33


def test_zero_total_weight_is_undefined():
    with pytest.raises(DivisionUndefinedError):
        calculate_allocations(_results(("A", 1, 0, 1.0), ("B", 2, 0, 2.0)), 10)


def test_zero_rank_is_undefined():
    with pytest.raises(DivisionUndefinedError):
        calculate_allocations(_results(("A", 1, 20, 0)), 10)


@pytest.mark.parametrize(
    "kwargs", [{"pool_amount": 0}, {"pool_amount": -1}, {"pool_amount": 10, "min_votes": 0}, {"pool_amount": 10, "top_n": 0}]
)
def test_invalid_options(kwargs):
    with pytest.raises(InvalidInputError):
        calculate_allocations(_results(("A", 1, 20, 1.0)), **kwargs)


def test_summary_lists_projects_and_total():
    summary = allocation_summary(
        _results(("ProjectA", 2, 22, 1.0), ("ProjectB", 1, 20, 2.0)), 10
    )
    assert summary.startswith("Fund Allocation (10 SOL pool)")
    assert "ProjectA" in summary
    assert "ProjectB" in summary
    assert "  Votes: 2 | Avg Score: 22.0 | Avg Rank: 1.0" in summary
    assert summary.endswith("Total Allocated: 10.0000 SOL")


def test_summary_without_eligible_projects():
    assert allocation_summary([], 10) == "No projects meet the minimum vote threshold."
