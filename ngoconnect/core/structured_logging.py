"""JSON-lines logging helper.

Every domain event is written as a single JSON object so the output can be
shipped to any collector without a formatter dependency.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from ngoconnect.core.request_context import get_request_id


def log_json(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Emit one JSON log line tagged with the current request ID.

    Fields that are None are dropped; values that JSON cannot encode (UUIDs,
    enums, dates) are written as their string form.
    """
    if not logger.isEnabledFor(level):
        return

    payload: dict[str, Any] = {
        "ts": datetime.now(UTC).isoformat(),
        "level": logging.getLevelName(level).lower(),
        "logger": logger.name,
        "event": event,
        "request_id": get_request_id(),
    }
    payload.update(fields)
    logger.log(
        level,
        json.dumps({k: v for k, v in payload.items() if v is not None}, default=str),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a bare message formatter on the root logger.

    Messages are already JSON, so the handler prints them verbatim.
    """
    root = logging.getLogger()
    if not any(getattr(h, "_ngoconnect", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._ngoconnect = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())
