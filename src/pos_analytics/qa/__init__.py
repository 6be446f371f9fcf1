"""QA module for data coverage.

Example:
    >>> from pos_analytics.qa import run_coverage_qa
    >>>
    >>> frames = service.load_frames("1m", counted_only=False)
    >>> result = run_coverage_qa(frames, service.calendar)
    >>> print(result.summary)
    >>> if result.missing_order_days is not None:
    ...     print(result.missing_order_days)

"""

from pos_analytics.qa.coverage import CoverageQAResult, run_coverage_qa

__all__ = ["CoverageQAResult", "run_coverage_qa"]
