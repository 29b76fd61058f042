"""Diagnostic artifact collection with per-step failure isolation.

This package provides:
- Models (diagcollect.models): step outcome types
- Collection core (diagcollect.collect): validation, step boundary,
  channel fallback, report filtering
- Audit (diagcollect.audit): activity log, STEP markers, run summary
- Engine (diagcollect.engine): run orchestration and family plans
- Tools (diagcollect.tools): external collaborator interfaces
- CLI (diagcollect.cli): command-line interface
- Public API (diagcollect.api): high-level convenience functions
"""

__version__ = "0.3.0"
__license__ = "MIT"

from diagcollect.api import collect, read_markers
from diagcollect.engine import CollectionConfig, CollectionResult, run_collection
from diagcollect.models import StepKind, StepOutcome, StepStatus

__all__ = [
    "__version__",
    "__license__",
    "CollectionConfig",
    "CollectionResult",
    "StepKind",
    "StepOutcome",
    "StepStatus",
    "collect",
    "read_markers",
    "run_collection",
]
