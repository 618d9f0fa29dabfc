"""Guided challenges checked against the live Bloch vector.

Each challenge is a fixed goal with a predicate over the current vector.  The
predicates only look at coordinates; history plays no part.  Completion
tracking belongs to the caller (see :class:`blochlab.session.Session`).
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .bloch_sim import BlochVector

SUCCESS_MESSAGE = "Success!"


class UnknownChallengeError(KeyError):
    def __init__(self, challenge_id: str):
        super().__init__(challenge_id)
        self.challenge_id = challenge_id

    def __str__(self) -> str:
        return f"unknown challenge {self.challenge_id!r}"


@dataclass(frozen=True)
class Challenge:
    id: str
    title: str
    description: str
    hint: str
    check: Callable[[BlochVector], bool]

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "hint": self.hint,
        }


@dataclass(frozen=True)
class ChallengeResult:
    challenge_id: str
    passed: bool
    hint: Optional[str]
    message: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "challenge_id": self.challenge_id,
            "passed": self.passed,
            "hint": self.hint,
            "message": self.message,
        }


CHALLENGES: Tuple[Challenge, ...] = (
    Challenge(
        id="reach-one",
        title="Reach |1⟩",
        description="Start at |0⟩. Use the X gate to move the state to the south pole (|1⟩).",
        hint="Click the X gate once.",
        check=lambda v: v.z < -0.99,
    ),
    Challenge(
        id="superposition",
        title="Superposition",
        description="Reset to |0⟩, then apply H to create (|0⟩+|1⟩)/√2.",
        hint="Use Reset |0⟩ then click H.",
        check=lambda v: abs(v.z) < 0.1,
    ),
    Challenge(
        id="phase-flip",
        title="Phase flip",
        description=(
            "From the equator (e.g. after H), apply Z. "
            "The point moves on the equator (phase change)."
        ),
        hint="Get to the equator with H, then apply Z.",
        check=lambda v: abs(v.z) < 0.15,
    ),
    Challenge(
        id="two-gates",
        title="Two gates",
        # H then X leaves |+> where it is; X first, then H, lands on |->.
        description="Start at |0⟩. Apply X then H. You should reach the |−⟩ state.",
        hint="Click X, then H. Target: x ≈ -1.",
        check=lambda v: v.x < -0.99,
    ),
    Challenge(
        id="back-to-start",
        title="Back to start",
        description="From any state, use only X and Z (and reset if you want) to return to |0⟩.",
        hint="Use Reset |0⟩ or undo and gates until z is near 1.",
        check=lambda v: v.z > 0.99,
    ),
)

_BY_ID: Dict[str, Challenge] = {c.id: c for c in CHALLENGES}


def get_challenge(challenge_id: str) -> Challenge:
    try:
        return _BY_ID[challenge_id]
    except KeyError:
        raise UnknownChallengeError(challenge_id) from None


def check_challenge(challenge_id: str, vector: BlochVector) -> ChallengeResult:
    """Evaluate challenge ``challenge_id`` against ``vector``.

    The hint is only returned when the check fails.  Calling this again for a
    challenge that already passed simply re-derives the same answer from the
    vector given.
    """
    challenge = get_challenge(challenge_id)
    if challenge.check(vector):
        return ChallengeResult(challenge.id, True, None, SUCCESS_MESSAGE)
    return ChallengeResult(challenge.id, False, challenge.hint, f"Not quite. Hint: {challenge.hint}")
