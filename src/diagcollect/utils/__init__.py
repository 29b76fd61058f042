"""Common utility functions for diagcollect."""

from diagcollect.utils.hashing import calculate_file_sha256, format_sha256
from diagcollect.utils.timestamps import (
    format_dir_stamp,
    format_log_timestamp,
    get_iso_timestamp,
)

__all__ = [
    "get_iso_timestamp",
    "format_log_timestamp",
    "format_dir_stamp",
    "calculate_file_sha256",
    "format_sha256",
]
