"""Analysis engine — one typo-check run from working copy to stored issues."""

from repopolisher.engines.analysis.runner import AnalysisOutcome, AnalysisRunner

__all__ = ["AnalysisOutcome", "AnalysisRunner"]
