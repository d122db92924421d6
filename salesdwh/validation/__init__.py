"""
Validation Layer
================
Data quality checks for the dimensional model.
"""

from salesdwh.validation.core import DQCheck, DQReport, add_check, add_stat
from salesdwh.validation.data_quality import run_checks, validate_data_quality

__all__ = [
    "DQCheck",
    "DQReport",
    "add_check",
    "add_stat",
    "run_checks",
    "validate_data_quality",
]
