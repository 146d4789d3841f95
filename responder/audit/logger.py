"""Audit trail for webhook decisions: JSON Lines, hash-chained, size-rotated."""

from __future__ import annotations

import fcntl
import hashlib
import json
from dataclasses import dataclass
from pathlib import Path

from responder.models import AuditEvent


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None


def _line_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


def validate_audit_chain(log_path: Path) -> ChainValidationResult:
    """Check that every entry's prev_hash matches the line before it."""
    text = log_path.read_text().strip()
    if not text:
        return ChainValidationResult(valid=True)

    previous: str | None = None
    for number, line in enumerate(text.split("\n"), start=1):
        prev_hash = json.loads(line).get("prev_hash")
        expected = _line_hash(previous) if previous is not None else None
        if prev_hash != expected:
            return ChainValidationResult(valid=False, broken_at_line=number)
        previous = line

    return ChainValidationResult(valid=True)


class AuditLogger:
    """Append-only audit log.

    Each line carries the SHA-256 of the line before it, so truncation or
    edits inside the current file are detectable. The chain restarts after
    rotation.
    """

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 5_242_880,
        backup_count: int = 3,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._last_line = self._read_last_line()

    def _read_last_line(self) -> str | None:
        if not self.log_path.exists():
            return None
        text = self.log_path.read_text().strip()
        return text.split("\n")[-1] if text else None

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _rotate_if_needed(self) -> bool:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return False

        self._backup(self._backup_count).unlink(missing_ok=True)
        for index in range(self._backup_count - 1, 0, -1):
            if self._backup(index).exists():
                self._backup(index).rename(self._backup(index + 1))
        self.log_path.rename(self._backup(1))
        return True

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        lock_path = self.log_path.with_name(f".{self.log_path.name}.lock")
        with open(lock_path, "w") as lock:
            fcntl.flock(lock, fcntl.LOCK_EX)
            try:
                if self._rotate_if_needed():
                    self._last_line = None
                record = json.loads(event.model_dump_json())
                record["prev_hash"] = (
                    _line_hash(self._last_line) if self._last_line is not None else None
                )
                line = json.dumps(record, separators=(",", ":"))
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lock, fcntl.LOCK_UN)

        self._last_line = line
