from __future__ import annotations
import math
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from genstudio.core.errors import ErrorKind, ProviderClientError, RequestTimeoutError

# Provider wording lives here and nowhere else. Matched case-insensitively.
QUOTA_STATUSES = (429,)
QUOTA_MARKERS = ("429", "quota", "resource_exhausted")
OVERLOAD_STATUSES = (503,)
OVERLOAD_MARKERS = ("503", "overloaded")

# e.g. "Please retry in 16.63030837s."
RETRY_IN = re.compile(r"retry in ([0-9]*\.?[0-9]+)\s*s", re.IGNORECASE)
SUGGESTED_DELAY_BUFFER_MS = 1000


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    suggested_delay_ms: Optional[int] = None

    @property
    def transient(self) -> bool:
        return self.kind.transient

    @property
    def suggested_delay(self) -> Optional[float]:
        """Suggested wait in seconds, if the server named one."""
        if self.suggested_delay_ms is None:
            return None
        return self.suggested_delay_ms / 1000.0


def error_status(exc: BaseException) -> Optional[int]:
    """Numeric HTTP-ish status from SDK errors (status_code / code / status)."""
    for attr in ("status_code", "code", "status"):
        val = getattr(exc, attr, None)
        if isinstance(val, bool):
            continue
        if isinstance(val, int):
            return val
        if isinstance(val, str) and val.isdigit():
            return int(val)
    return None


def error_text(exc: BaseException) -> str:
    text = str(exc)
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message and message not in text:
        text = f"{text} {message}"
    return text


def suggested_delay_ms(text: str) -> Optional[int]:
    m = RETRY_IN.search(text)
    if not m:
        return None
    seconds = float(m.group(1))
    return math.ceil(seconds * 1000) + SUGGESTED_DELAY_BUFFER_MS


def _matches(status: Optional[int], lower: str, statuses: Tuple[int, ...], markers: Tuple[str, ...]) -> bool:
    return status in statuses or any(m in lower for m in markers)


def classify(exc: BaseException) -> ClassifiedError:
    """
    Map a raw failure to a retry decision. Pure: same error text/status,
    same answer.
    """
    if isinstance(exc, ProviderClientError):
        return ClassifiedError(ErrorKind.FATAL)

    text = error_text(exc)
    delay = suggested_delay_ms(text)

    if isinstance(exc, RequestTimeoutError):
        return ClassifiedError(ErrorKind.TRANSIENT_OVERLOAD, delay)

    status = error_status(exc)
    lower = text.lower()
    if _matches(status, lower, QUOTA_STATUSES, QUOTA_MARKERS):
        return ClassifiedError(ErrorKind.TRANSIENT_QUOTA, delay)
    if _matches(status, lower, OVERLOAD_STATUSES, OVERLOAD_MARKERS):
        return ClassifiedError(ErrorKind.TRANSIENT_OVERLOAD, delay)
    return ClassifiedError(ErrorKind.FATAL, delay)
