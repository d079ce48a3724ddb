"""Per-run log collector.

Each remediation run owns one RunLog. It is passed explicitly to every step
that reports progress and its lines are returned to the caller as the
result's ``detailed_log``. Nothing is shared between runs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

_LEVELS = {
    "info": (logging.INFO, "INFO"),
    "success": (logging.INFO, "OK"),
    "warning": (logging.WARNING, "WARN"),
    "error": (logging.ERROR, "ERROR"),
}


@dataclass
class RunLog:
    """Ordered, human-readable log lines for a single run."""
    session_id: Optional[str] = None
    lines: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add(self, message: str, level: str = "info") -> None:
        log_level, marker = _LEVELS.get(level, _LEVELS["info"])
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.lines.append(f"[{timestamp}] {marker} {message}")
        if level == "warning":
            self.warnings.append(message)
        logger.log(log_level, f"[{self.session_id or '-'}] {message}")

    def info(self, message: str) -> None:
        self.add(message, "info")

    def success(self, message: str) -> None:
        self.add(message, "success")

    def warning(self, message: str) -> None:
        self.add(message, "warning")

    def error(self, message: str) -> None:
        self.add(message, "error")

    def snapshot(self) -> list[str]:
        return list(self.lines)
