"""Activity log, STEP marker grammar and run summary for diagcollect.

Main Components
---------------
- ActivityLog: flushed, console-mirrored, line-oriented run log
- markers: fixed STEP marker grammar and its parser
- SummaryWriter: atomic run.json writer
"""

from diagcollect.audit.activity_log import ActivityLog
from diagcollect.audit.helpers import generate_run_id
from diagcollect.audit.markers import MarkerRecord, format_outcome, parse_marker
from diagcollect.audit.summary import SummaryWriter

__all__ = [
    "ActivityLog",
    "MarkerRecord",
    "SummaryWriter",
    "format_outcome",
    "generate_run_id",
    "parse_marker",
]
