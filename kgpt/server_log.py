"""Request logging and health reporting for the API server."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

# The status code reported for failures that carry no code of their own.
_UNKNOWN_STATUS = 2
_TRUE_WORDS = frozenset({"1", "t", "true"})


@dataclass
class Health:
    """Health counters reported by the server."""

    status: str = "ok"
    success: int = 0
    failure: int = 0

    def to_json(self) -> str:
        """Return the health report as indented JSON."""
        return json.dumps(asdict(self), indent=2)


def log_request(
    logger: logging.Logger,
    fields: Mapping[str, Any],
    status_code: int,
    message: str,
) -> None:
    """Log a finished request, as an error when ``status_code`` is 400 or above."""
    level = logging.ERROR if status_code >= 400 else logging.INFO
    logger.log(level, "%s", message, extra={"fields": dict(fields)})


def get_bool_param(param: str) -> bool:
    """Read a boolean parameter; anything unrecognised counts as false."""
    return param.lower() in _TRUE_WORDS


def _status_code(err: BaseException) -> int:
    code = getattr(err, "code", None)
    if isinstance(code, int):
        return code
    return _UNKNOWN_STATUS


def timed_call(
    logger: logging.Logger,
    method: str,
    request: Any,
    handler: Callable[[Any], Any],
    remote_addr: str | None = None,
) -> Any:
    """Run ``handler(request)`` and log how it went and how long it took.

    Exceptions from the handler are logged and raised again.
    """
    start = time.monotonic()
    try:
        response = handler(request)
    except Exception as err:
        fields = _fields(start, method, request, remote_addr)
        code = _status_code(err)
        fields["status_code"] = code
        log_request(logger, fields, code, f"request failed. {err}")
        raise
    log_request(
        logger, _fields(start, method, request, remote_addr), 0, "request completed"
    )
    return response


def _fields(
    start: float, method: str, request: Any, remote_addr: str | None
) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "duration_ms": int((time.monotonic() - start) * 1000),
        "method": method,
        "request": request,
    }
    if remote_addr is not None:
        fields["remote_addr"] = remote_addr
    return fields