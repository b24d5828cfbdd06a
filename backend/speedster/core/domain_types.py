"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ScanId is the 24-char hex form of a MongoDB ObjectId
    - All audit outcomes encoded as Enums — no raw string matching
"""

from enum import Enum
from typing import NewType


ScanId = NewType("ScanId", str)

# Lighthouse appends these to --output-path when both formats are requested
JSON_REPORT_SUFFIX = ".report.json"
HTML_REPORT_SUFFIX = ".report.html"

MAX_BODY_BYTES = 1_048_576


class AuditFailure(str, Enum):
    """Why a Lighthouse run yielded no reports."""
    LAUNCH_FAILED = "launch_failed"
    PROCESS_FAILED = "process_failed"
    ARTIFACT_MISSING = "artifact_missing"
    ARTIFACT_UNREADABLE = "artifact_unreadable"
