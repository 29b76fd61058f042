"""External collaborators: protocols and system implementations."""

from diagcollect.tools.base import (
    Archiver,
    CommandResult,
    CommandRunner,
    EventLogExporter,
    PrivilegeChecker,
    RegistryExporter,
    ReportGenerator,
    Toolset,
)
from diagcollect.tools.system import ZipArchiver, default_toolset

__all__ = [
    "Archiver",
    "CommandResult",
    "CommandRunner",
    "EventLogExporter",
    "PrivilegeChecker",
    "RegistryExporter",
    "ReportGenerator",
    "Toolset",
    "ZipArchiver",
    "default_toolset",
]
