"""Collection orchestration engine.

This package provides the run orchestrator, its configuration and result
types, output-root handling and the fixed per-family step plans.
"""

from diagcollect.engine.config import CollectionConfig, CollectionResult, RunState
from diagcollect.engine.plans import FAMILIES, Family, StepSpec, get_family
from diagcollect.engine.run import ACTIVITY_LOG_NAME, CollectionRun, run_collection

__all__ = [
    "ACTIVITY_LOG_NAME",
    "CollectionConfig",
    "CollectionResult",
    "CollectionRun",
    "FAMILIES",
    "Family",
    "RunState",
    "StepSpec",
    "get_family",
    "run_collection",
]
