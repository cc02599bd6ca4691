"""Local scanner engine — collect project metadata from a directory."""

from repopolisher.engines.local_scanner.scanner import (
    ScannedProject,
    count_languages,
    read_description,
    scan_directory,
)

__all__ = ["ScannedProject", "count_languages", "read_description", "scan_directory"]
