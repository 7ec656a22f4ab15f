"""Append-only activity log persisted under a single key-value entry."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "siteLogs"
DEFAULT_PAGE = "/"


class StorageError(RuntimeError):
    """Raised when the persisted log cannot be read or written."""


class LogType(str, Enum):
    """Categories of logged events; drives bridge coloring."""

    INIT = "init"
    PAGE_CHANGE = "pageChange"
    CLICK = "click"
    ERROR = "error"
    CUSTOM = "custom"
    OTHER = "other"

    @classmethod
    def from_token(cls, value: str | "LogType") -> "LogType":
        if isinstance(value, cls):
            return value
        token = str(value).strip()
        for member in cls:
            if member.value == token or member.value.lower() == token.lower():
                return member
        return cls.OTHER


_ISO_TIMESTAMP = re.compile(
    r"""
    (?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})
    (?:[Tt\ ](?P<hour>\d{2}):(?P<minute>\d{2})
        (?::(?P<second>\d{2})(?:[.,](?P<fraction>\d+))?)?
    )?
    \s*(?P<zone>[Zz]|[+-]\d{2}(?::?\d{2})?)?
    """,
    re.VERBOSE,
)


def _parse_zone(token: Optional[str]) -> timezone:
    if token is None or token in ("Z", "z"):
        return timezone.utc
    sign = -1 if token[0] == "-" else 1
    digits = token[1:].replace(":", "")
    minutes = int(digits[:2]) * 60 + int(digits[2:] or 0)
    return timezone(sign * timedelta(minutes=minutes))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning ``None`` when it cannot be read.

    A trailing ``Z`` or a numeric offset is accepted and naive values are
    taken as UTC. Fractional seconds of any length are cut to microseconds,
    so the result does not depend on the interpreter's ``fromisoformat``.
    """

    if not isinstance(value, str):
        return None
    match = _ISO_TIMESTAMP.fullmatch(value.strip())
    if match is None:
        return None
    fraction = (match["fraction"] or "")[:6].ljust(6, "0")
    try:
        return datetime(
            int(match["year"]),
            int(match["month"]),
            int(match["day"]),
            int(match["hour"] or 0),
            int(match["minute"] or 0),
            int(match["second"] or 0),
            int(fraction),
            tzinfo=_parse_zone(match["zone"]),
        )
    except ValueError:
        return None


def format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One persisted event record."""

    time: str
    page: str
    type: str
    message: str

    def parsed_time(self) -> Optional[datetime]:
        return parse_timestamp(self.time)

    @property
    def log_type(self) -> LogType:
        return LogType.from_token(self.type)

    def to_payload(self) -> dict[str, str]:
        return {"time": self.time, "page": self.page, "type": self.type, "message": self.message}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LogEntry":
        return cls(
            time=str(payload.get("time") or ""),
            page=str(payload.get("page") or ""),
            type=str(payload.get("type") or ""),
            message=str(payload.get("message") or ""),
        )


class MemoryBackend:
    """Dict-backed key-value medium.

    ``quota`` caps the encoded size of a single value in bytes, which lets
    callers reproduce storage capacity failures.
    """

    def __init__(self, initial: Mapping[str, str] | None = None, *, quota: int | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self.quota = quota

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota is not None and len(value.encode("utf-8")) > self.quota:
            raise StorageError(f"Value for '{key}' exceeds storage quota of {self.quota} bytes")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileBackend:
    """Stores each key as a file inside ``directory``; writes replace the whole file."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        safe = key.replace(os.sep, "_")
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=self.directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc


class LogStore:
    """Ordered, append-only event log over an explicit key-value backend.

    Every mutation is a whole-collection read-modify-write. A failed write
    raises :class:`StorageError` and leaves the previously stored blob intact.
    """

    def __init__(
        self,
        backend: Any,
        *,
        key: str = DEFAULT_STORAGE_KEY,
        page: str = DEFAULT_PAGE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.backend = backend
        self.key = key
        self.page = page
        self._clock = clock

    def _load(self) -> List[LogEntry]:
        raw = self.backend.get(self.key)
        if raw is None or raw == "":
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Stored log under '{self.key}' is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise StorageError(f"Stored log under '{self.key}' must be a JSON array")
        entries: List[LogEntry] = []
        for position, record in enumerate(data):
            if not isinstance(record, Mapping):
                LOGGER.warning("Skipping non-object log record at position %d", position)
                continue
            entries.append(LogEntry.from_payload(record))
        return entries

    def _save(self, entries: List[LogEntry]) -> None:
        try:
            blob = json.dumps([entry.to_payload() for entry in entries], separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Failed to serialize log: {exc}") from exc
        self.backend.set(self.key, blob)

    def append(self, type: str | LogType, message: str) -> LogEntry:
        """Record one entry and return it exactly as persisted."""

        return self.append_indexed(type, message)[1]

    def append_indexed(self, type: str | LogType, message: str) -> tuple[int, LogEntry]:
        """Like :meth:`append`, also returning the new entry's position in :meth:`list`."""

        token = type.value if isinstance(type, LogType) else str(type)
        entry = LogEntry(
            time=format_timestamp(self._clock()),
            page=self.page,
            type=token,
            message=str(message),
        )
        entries = self._load()
        entries.append(entry)
        self._save(entries)
        LOGGER.debug("append type=%s page=%s count=%d", token, self.page, len(entries))
        return len(entries) - 1, entry

    def list(self) -> List[LogEntry]:
        return self._load()

    def remove_last(self) -> None:
        entries = self._load()
        if not entries:
            return
        entries.pop()
        self._save(entries)
        LOGGER.debug("remove_last count=%d", len(entries))

    def clear(self) -> None:
        self.backend.delete(self.key)
        LOGGER.debug("clear key=%s", self.key)

    def __len__(self) -> int:
        return len(self._load())

    # Shortcut helpers for common event kinds.

    def log_click(self, target: str) -> None:
        self.append(LogType.CLICK, f"Clicked on: {target}")

    def log_page_change(self, to_page: str) -> None:
        self.page = str(to_page)
        self.append(LogType.PAGE_CHANGE, f"Navigated to: {to_page}")

    def log_error(self, error: BaseException | str) -> None:
        self.append(LogType.ERROR, str(error))

    def log_init(self) -> None:
        self.append(LogType.INIT, "Web app initialized")


__all__ = [
    "DEFAULT_PAGE",
    "DEFAULT_STORAGE_KEY",
    "FileBackend",
    "LogEntry",
    "LogStore",
    "LogType",
    "MemoryBackend",
    "StorageError",
    "format_timestamp",
    "parse_timestamp",
]
