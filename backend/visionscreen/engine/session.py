"""Shared lifecycle for a single vision test session.

A session moves ready -> running -> complete and never backwards. Each
subclass keeps its staircase bookkeeping in a frozen state object and replaces
it through a pure transition function on every response; this class owns the
timing, the trial log and the hand-off of the finished result.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import SessionStateError
from .metrics import aggregate_metrics
from .types import SessionStatus, Stimulus, TestKind, TestResult, Trial

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
Choice = Callable[[Sequence[str]], str]


def now_ms() -> int:
    return int(time.monotonic() * 1000)


class TestSession:
    __test__ = False

    kind: TestKind

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        choice: Optional[Choice] = None,
        session_id: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.owner = owner
        self.clock: Clock = clock or now_ms
        self.choice: Choice = choice or random.choice
        self.status = SessionStatus.READY
        self.trials: List[Trial] = []
        self.created_at = datetime.utcnow()
        self.last_activity_at = self.created_at
        self._presented_at = 0
        self._result: Optional[TestResult] = None

    # -- subclass hooks -------------------------------------------------

    def _on_start(self) -> None:
        raise NotImplementedError

    def _normalize(self, text: str) -> str:
        return text.strip()

    def _record(self, answer: str, response_time_ms: int) -> Trial:
        raise NotImplementedError

    def _advance(self, correct: bool) -> bool:
        """Fold one outcome into the staircase; return True when the test is over."""
        raise NotImplementedError

    def _stimulus(self) -> Stimulus:
        raise NotImplementedError

    def _metric_options(self) -> Dict[str, Any]:
        return {}

    # -- lifecycle ------------------------------------------------------

    def start(self) -> Stimulus:
        if self.status is not SessionStatus.READY:
            raise SessionStateError(f"Session {self.session_id} is already {self.status.value}")
        self._on_start()
        self.status = SessionStatus.RUNNING
        self._presented_at = self.clock()
        logger.info("Started %s session %s", self.kind.value, self.session_id)
        return self._stimulus()

    def respond(self, text: Optional[str]) -> Optional[Trial]:
        """Capture one answer. Blank input is not a trial and returns None."""
        if self.status is not SessionStatus.RUNNING:
            raise SessionStateError(f"Session {self.session_id} is {self.status.value}, not running")
        answer = self._normalize(text or "")
        if not answer:
            return None
        elapsed = max(0, self.clock() - self._presented_at)
        trial = self._record(answer, elapsed)
        self.trials.append(trial)
        self.last_activity_at = datetime.utcnow()
        if self._advance(trial.correct):
            self.status = SessionStatus.COMPLETE
            logger.info(
                "Completed %s session %s after %d trials", self.kind.value, self.session_id, len(self.trials)
            )
        else:
            self._presented_at = self.clock()
        return trial

    @property
    def current_stimulus(self) -> Optional[Stimulus]:
        if self.status is not SessionStatus.RUNNING:
            return None
        return self._stimulus()

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETE

    def result(self) -> TestResult:
        if not self.is_complete:
            raise SessionStateError(f"Session {self.session_id} has not completed")
        if self._result is None:
            self._result = TestResult(
                test_type=self.kind,
                trials=tuple(self.trials),
                metrics=aggregate_metrics(self.kind, self.trials, **self._metric_options()),
                created_at=datetime.utcnow(),
            )
        return self._result

    def snapshot(self) -> Dict[str, Any]:
        stimulus = self.current_stimulus
        return {
            "session_id": self.session_id,
            "test_type": self.kind.value,
            "status": self.status.value,
            "trials_completed": len(self.trials),
            "correct": sum(1 for t in self.trials if t.correct),
            "stimulus": stimulus.model_dump(mode="json") if stimulus else None,
        }
