"""Per-user sessions.

A :class:`Session` bundles one :class:`~blochlab.bloch_sim.StateEngine` with
the set of challenges the user has completed and a log of the commands they
issued.  Nothing is shared between sessions, so any number of them can live
side by side in one process.
"""

import logging
import uuid
from collections import OrderedDict, deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Set, Union

from .bloch_sim import MAX_HISTORY, StateEngine, format_vector
from .challenges import CHALLENGES, ChallengeResult, check_challenge
from .config import Settings

logger = logging.getLogger(__name__)

LOG_LIMIT = 200


class UnknownSessionError(KeyError):
    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"unknown session {self.session_id!r}"


class Session:
    """One user's engine, challenge progress and command log."""

    def __init__(
        self,
        session_id: Optional[str] = None,
        history_limit: int = MAX_HISTORY,
        log_limit: int = LOG_LIMIT,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.engine = StateEngine(history_limit=history_limit)
        self.completed: Set[str] = set()
        self.log: Deque[Dict[str, Any]] = deque(maxlen=log_limit)
        self.created = datetime.now(timezone.utc)

    def _record(self, command: str) -> None:
        self.log.append(
            {
                "time": datetime.now(timezone.utc).isoformat(),
                "command": command,
                "vector": format_vector(self.engine.current_vector()),
            }
        )

    def apply_gate(self, name: str) -> None:
        self.engine.apply_gate(name)
        self._record(f"gate {name}")

    def reset_to(self, basis: Union[int, str]) -> None:
        self.engine.reset_to(basis)
        self._record(f"reset {basis}")

    def undo(self) -> bool:
        undone = self.engine.undo()
        if undone:
            self._record("undo")
        return undone

    def check_challenge(self, challenge_id: str) -> ChallengeResult:
        """Check a challenge and remember it if it passed."""
        result = check_challenge(challenge_id, self.engine.current_vector())
        if result.passed and challenge_id not in self.completed:
            self.completed.add(challenge_id)
            logger.info("Session %s completed challenge %s", self.id, challenge_id)
        self._record(f"check {challenge_id} -> {'pass' if result.passed else 'fail'}")
        return result

    def completed_in_order(self) -> List[str]:
        return [c.id for c in CHALLENGES if c.id in self.completed]

    def snapshot(self) -> Dict[str, Any]:
        return {
            "session_id": self.id,
            "created": self.created.isoformat(),
            "state": self.engine.readout(),
            "completed": self.completed_in_order(),
            "log_size": len(self.log),
        }


class SessionStore:
    """Bounded registry of live sessions, oldest dropped first when full."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self) -> Session:
        session = Session(
            history_limit=self.settings.history_limit,
            log_limit=self.settings.log_limit,
        )
        self._sessions[session.id] = session
        while len(self._sessions) > self.settings.max_sessions:
            old_id, _ = self._sessions.popitem(last=False)
            logger.info("Evicted session %s", old_id)
        logger.info("Created session %s", session.id)
        return session

    def get(self, session_id: str) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise UnknownSessionError(session_id) from None

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise UnknownSessionError(session_id)
        logger.info("Deleted session %s", session_id)
