# PATH: monitoring/__init__.py
"""
Monitoring package for chaincheck.

Stable import contract:
- VerificationReport
- build_summary
- build_verification_report
- print_verification_report
"""

from monitoring.verification_report import (
    VerificationReport,
    build_summary,
    build_verification_report,
    print_verification_report,
)

__all__ = [
    "VerificationReport",
    "build_summary",
    "build_verification_report",
    "print_verification_report",
]
