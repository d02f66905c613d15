# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Diagnostic logging module for JSONL output.

- JSONL format (one JSON object per line)
- Immediate flush after every write
- Date-based file rotation
- Per-type statistics

Log Location: ~/.module_resolver/diagnostics/<DATE>-<SESSION-ID>.jsonl
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from modresolve.diagnostics import Diagnostic
from modresolve.log_config import build_log_filename, get_current_utc_date, get_diagnostics_dir

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticStatistics:
    """Aggregated diagnostic counts for a session.

    Attributes:
        total: Total number of diagnostics logged.
        errors: Number of error-severity diagnostics.
        by_type: Count of diagnostics by type.
        modules_with_most_diagnostics: Modules with the highest counts.
    """

    total: int = 0
    errors: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    modules_with_most_diagnostics: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "errors": self.errors,
            "by_type": self.by_type,
            "modules_with_most_diagnostics": self.modules_with_most_diagnostics,
        }


class DiagnosticLogger:
    """Appends diagnostics to a JSONL file.

    Usage:
        with DiagnosticLogger(session_id="abc-123", data_root=root) as diag_log:
            diag_log.log_diagnostics(report.diagnostics())
            stats = diag_log.get_statistics()
    """

    def __init__(self, session_id: str, data_root: Optional[Path] = None) -> None:
        """Initialize the diagnostic logger.

        Args:
            session_id: Session ID used in the log filename.
            data_root: Root directory for logs. Uses {data_root}/diagnostics/.
                      If None, uses ~/.module_resolver/diagnostics/.

        Raises:
            ValueError: If session_id is not a safe filename component.
        """
        self._log_dir = get_diagnostics_dir(data_root)
        self._session_id = session_id
        self._log_file = build_log_filename(session_id)
        self._current_date = get_current_utc_date()

        self._count = 0
        self._error_count = 0
        self._by_type: Counter[str] = Counter()
        self._by_module: Counter[str] = Counter()

        # File handle (lazy initialization)
        self._file_handle: Optional[TextIO] = None

    def _check_date_rotation(self) -> None:
        """Start a new file when the UTC date changes."""
        current_date = get_current_utc_date()
        if current_date != self._current_date:
            if self._file_handle is not None:
                self._file_handle.close()
                self._file_handle = None
                logger.debug(f"Rotated diagnostic log: {self._current_date} -> {current_date}")
            self._current_date = current_date
            self._log_file = build_log_filename(self._session_id)

    def _open_file(self) -> TextIO:
        self._check_date_rotation()

        if self._file_handle is None:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            log_path = self.get_log_path()
            # noqa: SIM115 - We manage the file handle lifecycle via close() method
            self._file_handle = open(log_path, "a", encoding="utf-8")  # noqa: SIM115
            logger.debug(f"Opened diagnostic log file: {log_path}")
        return self._file_handle

    def _record(self, diagnostic: Diagnostic) -> None:
        self._count += 1
        if diagnostic.is_error:
            self._error_count += 1
        self._by_type[diagnostic.type] += 1
        if diagnostic.module:
            self._by_module[diagnostic.module] += 1

    def log_diagnostic(self, diagnostic: Diagnostic) -> None:
        """Log a single diagnostic, flushing immediately."""
        file_handle = self._open_file()
        file_handle.write(json.dumps(diagnostic.to_dict(), separators=(",", ":")) + "\n")
        file_handle.flush()
        self._record(diagnostic)

    def log_diagnostics(self, diagnostics: List[Diagnostic]) -> None:
        """Log multiple diagnostics, flushing once after the batch."""
        if not diagnostics:
            return

        file_handle = self._open_file()
        for diagnostic in diagnostics:
            file_handle.write(json.dumps(diagnostic.to_dict(), separators=(",", ":")) + "\n")
            self._record(diagnostic)
        file_handle.flush()

    def get_statistics(self, top_modules_count: int = 5) -> DiagnosticStatistics:
        """Aggregate counts logged so far by this logger."""
        top_modules = self._by_module.most_common(top_modules_count)
        return DiagnosticStatistics(
            total=self._count,
            errors=self._error_count,
            by_type=dict(self._by_type),
            modules_with_most_diagnostics=[
                {"module": name, "count": count} for name, count in top_modules
            ],
        )

    def get_log_path(self) -> Path:
        return self._log_dir / self._log_file

    def close(self) -> None:
        """Close the log file handle."""
        if self._file_handle is not None:
            self._file_handle.close()
            self._file_handle = None
            logger.debug(f"Closed diagnostic log file: {self.get_log_path()}")

    def __enter__(self) -> "DiagnosticLogger":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def read_diagnostics_from_log(log_path: Path, limit: Optional[int] = None) -> List[Diagnostic]:
    """Read diagnostics back from a JSONL log file.

    Raises:
        FileNotFoundError: If log file doesn't exist.
        json.JSONDecodeError: If log file contains invalid JSON.
    """
    diagnostics: List[Diagnostic] = []

    with open(log_path, encoding="utf-8") as f:
        for line in f:
            if limit is not None and len(diagnostics) >= limit:
                break
            line = line.strip()
            if not line:
                continue
            diagnostics.append(Diagnostic.from_json(line))

    return diagnostics
