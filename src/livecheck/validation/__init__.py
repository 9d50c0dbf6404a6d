"""Checks run against a loaded manifest."""

from .coverage import check_timeline_coverage
from .sanity import run_sanity_checks

__all__ = ["check_timeline_coverage", "run_sanity_checks"]
