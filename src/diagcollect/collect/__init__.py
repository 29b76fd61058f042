"""Collection core: validation, step boundary, channel fallback, report filtering."""

from diagcollect.collect.fallback import ChannelFallbackResolver
from diagcollect.collect.report_filter import (
    FilterResult,
    extract_matching,
    extract_report_file,
    locate_report,
)
from diagcollect.collect.step_runner import ActionResult, StepRunner
from diagcollect.collect.validator import (
    MIN_EXPORT_BYTES,
    MIN_TEXT_BYTES,
    min_size_for,
    validate_artifact,
)

__all__ = [
    "ActionResult",
    "StepRunner",
    "ChannelFallbackResolver",
    "FilterResult",
    "extract_matching",
    "extract_report_file",
    "locate_report",
    "MIN_EXPORT_BYTES",
    "MIN_TEXT_BYTES",
    "min_size_for",
    "validate_artifact",
]
