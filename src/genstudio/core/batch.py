from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from .errors import ErrorKind, GivenUpError, format_error
from .models import GeneratedArtifact

logger = logging.getLogger(__name__)

BatchTask = Tuple[str, Callable[[], Awaitable[GeneratedArtifact]]]


class StopFlag:
    """Cooperative stop; only honoured between tasks."""

    def __init__(self) -> None:
        self._set = False

    def set(self) -> None:
        self._set = True

    def clear(self) -> None:
        self._set = False

    def is_set(self) -> bool:
        return self._set


@dataclass
class TaskOutcome:
    label: str
    artifact: Optional[GeneratedArtifact] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.artifact is not None


@dataclass
class BatchResult:
    outcomes: List[TaskOutcome] = field(default_factory=list)
    stopped: bool = False
    halted: bool = False
    halt_reason: Optional[str] = None

    @property
    def artifacts(self) -> List[GeneratedArtifact]:
        return [o.artifact for o in self.outcomes if o.artifact is not None]


def _exhausted_quota(exc: BaseException) -> bool:
    return isinstance(exc, GivenUpError) and exc.kind is ErrorKind.TRANSIENT_QUOTA


async def run_batch(tasks: Sequence[BatchTask], *, pacing: float = 3.0, stop: Optional[StopFlag] = None,
                    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                    on_progress: Optional[Callable[[int, int, str], Any]] = None) -> BatchResult:
    """
    Run generation tasks one at a time with a fixed pause between them.
    A quota give-up halts the rest of the queue; other failures are recorded
    and the queue moves on.
    """
    result = BatchResult()
    total = len(tasks)
    for i, (label, run) in enumerate(tasks):
        if stop is not None and stop.is_set():
            result.stopped = True
            break
        if on_progress is not None:
            on_progress(i, total, label)
        try:
            result.outcomes.append(TaskOutcome(label, artifact=await run()))
        except Exception as e:
            logger.warning("Batch task %r failed: %s", label, e)
            result.outcomes.append(TaskOutcome(label, error=format_error(e)))
            if _exhausted_quota(e):
                result.halted = True
                result.halt_reason = format_error(e)
                break
        if i < total - 1 and pacing > 0:
            await sleep(pacing)
    return result
