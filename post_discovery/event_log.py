from __future__ import annotations

import itertools
import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, TextIO

Level = Literal["INFO", "WARN", "ERROR"]

_TRACEBACK_TAIL = 8000


def _tail(text: str, limit: int) -> str:
    # The innermost frames sit at the end of a traceback.
    return text if len(text) <= limit else "…" + text[-(limit - 1):]


class EventLog:
    """
    JSONL log of one enhancement session.

    Every line carries `ts`, a per-session `seq`, `level`, `event`,
    `session_id`, the `page` when known, and the event's `data`. `seq` orders
    records written within the same timestamp, so one `filter_state_changed`
    per transition can be read back in order.

    The file is opened on first write; once closed, further records are
    dropped.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        overwrite: bool = True,
        session_id: str | None = None,
        page: str | None = None,
    ) -> None:
        self._path = Path(path)
        self._mode = "w" if overwrite else "a"
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._page = (page or "").strip() or None
        self._seq = itertools.count(1)
        self._fp: TextIO | None = None
        self._closed = False

    @classmethod
    def open(cls, path: str | Path, **kwargs: Any) -> "EventLog":
        log = cls(path, **kwargs)
        log._open_file()
        return log

    @property
    def path(self) -> Path:
        return self._path

    @property
    def session_id(self) -> str:
        return self._session_id

    def set_page(self, page: str) -> None:
        name = (page or "").strip()
        if name:
            self._page = name

    def close(self) -> None:
        self._closed = True
        if self._fp is None:
            return
        try:
            self._fp.flush()
        finally:
            self._fp.close()
            self._fp = None

    def __enter__(self) -> "EventLog":
        self._open_file()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def info(self, event: str, **data: Any) -> None:
        self.log("INFO", event, **data)

    def warning(self, event: str, **data: Any) -> None:
        self.log("WARN", event, **data)

    def exception(self, event: str, *, exc: BaseException, **data: Any) -> None:
        formatted = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        data["error"] = {
            "type": type(exc).__name__,
            "message": str(exc),
            "traceback": _tail(formatted, _TRACEBACK_TAIL),
        }
        self.log("ERROR", event, **data)

    def log(self, level: Level, event: str, **data: Any) -> None:
        record: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "seq": next(self._seq),
            "level": level,
            "event": event,
            "session_id": self._session_id,
        }
        if self._page:
            record["page"] = self._page
        if data:
            record["data"] = data
        self._write(record)

    def _open_file(self) -> None:
        if self._fp is not None or self._closed:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fp = self._path.open(self._mode, encoding="utf-8", newline="\n")

    def _write(self, record: dict[str, Any]) -> None:
        self._open_file()
        if self._fp is None:
            return
        line = json.dumps(record, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str)
        self._fp.write(line + "\n")
        self._fp.flush()
