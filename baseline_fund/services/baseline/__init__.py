"""Agent baseline test: questionnaire, scoring, ballots and fund allocation."""

from baseline_fund.services.baseline.service import BaselineService

__all__ = ["BaselineService"]
