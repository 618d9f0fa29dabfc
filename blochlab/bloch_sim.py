"""Single qubit Bloch sphere engine.

This module models one pure qubit as a point on the unit sphere and applies
the usual fixed gates to it as rotations.  A Bloch vector ``(x, y, z)`` is a
plain immutable triple; the poles ``(0, 0, 1)`` and ``(0, 0, -1)`` are the
computational basis states ``|0>`` and ``|1>`` and the equator holds the equal
superpositions distinguished only by their phase angle.

Every gate is a rotation of the sphere so in exact arithmetic the vector keeps
unit length.  Floating point drift is absorbed by renormalising after each
gate instead of trusting the rotation to preserve the norm.

The :class:`StateEngine` keeps the live vector together with a bounded undo
history and notifies subscribers whenever the state changes.  Subscribers get
no payload; they are expected to pull :meth:`StateEngine.readout` themselves::

    >>> engine = StateEngine()
    >>> engine.apply_gate("H")
    >>> engine.readout()["display"]["vector"]
    '(1.000, 0.000, 0.000)'
"""

import logging
import math
from collections import deque
from types import MappingProxyType
from typing import Callable, Deque, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

logger = logging.getLogger(__name__)

MAX_HISTORY = 20
POLE_EPSILON = 1e-10
LABEL_TOLERANCE = 1e-3


class InvalidGateError(ValueError):
    """Raised when a gate name from an untrusted source is not in the gate table."""

    def __init__(self, name: str):
        super().__init__(f"unknown gate {name!r}; expected one of {', '.join(GATES)}")
        self.name = name


class BlochVector(NamedTuple):
    x: float
    y: float
    z: float


ZERO_STATE = BlochVector(0.0, 0.0, 1.0)
ONE_STATE = BlochVector(0.0, 0.0, -1.0)


# Gate transforms.  Each one receives the full pre-gate vector and builds the
# result from it, so no output coordinate is ever read back as an input.

def apply_x(v: BlochVector) -> BlochVector:
    return BlochVector(v.x, -v.y, -v.z)


def apply_y(v: BlochVector) -> BlochVector:
    return BlochVector(-v.x, v.y, -v.z)


def apply_z(v: BlochVector) -> BlochVector:
    return BlochVector(-v.x, -v.y, v.z)


def apply_h(v: BlochVector) -> BlochVector:
    """Rotate by pi about the ``(x + z) / sqrt(2)`` axis."""
    x, y, z = v
    return BlochVector(z, -y, x)


def apply_s(v: BlochVector) -> BlochVector:
    """Rotate by pi/2 about Z (``S = sqrt(Z)``)."""
    x, y, z = v
    return BlochVector(-y, x, z)


_T_COS = math.cos(math.pi / 4)
_T_SIN = math.sin(math.pi / 4)


def apply_t(v: BlochVector) -> BlochVector:
    """Rotate by pi/4 about Z (``T = sqrt(S)``)."""
    x, y, z = v
    return BlochVector(_T_COS * x - _T_SIN * y, _T_SIN * x + _T_COS * y, z)


GATES: Mapping[str, Callable[[BlochVector], BlochVector]] = MappingProxyType(
    {
        "X": apply_x,
        "Y": apply_y,
        "Z": apply_z,
        "H": apply_h,
        "S": apply_s,
        "T": apply_t,
    }
)

GATE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "X": "X: Bit flip. Rotates the state by π around the X axis. |0⟩ ↔ |1⟩.",
        "Y": "Y: Rotates the state by π around the Y axis.",
        "Z": "Z: Phase flip. Rotates by π around the Z axis (flips phase in the equator).",
        "H": (
            "H: Hadamard. Puts |0⟩ and |1⟩ into equal superposition. "
            "Moves north/south pole to the equator."
        ),
        "S": "S (√Z): Rotates by π/2 around the Z axis.",
        "T": "T (∜Z): Rotates by π/4 around the Z axis.",
    }
)
DEFAULT_GATE_DESCRIPTION = "Hover a gate for a short description."

BASIS_LABELS: Tuple[Tuple[str, BlochVector], ...] = (
    ("|0⟩", BlochVector(0.0, 0.0, 1.0)),
    ("|1⟩", BlochVector(0.0, 0.0, -1.0)),
    ("|+⟩", BlochVector(1.0, 0.0, 0.0)),
    ("|−⟩", BlochVector(-1.0, 0.0, 0.0)),
    ("|+i⟩", BlochVector(0.0, 1.0, 0.0)),
    ("|−i⟩", BlochVector(0.0, -1.0, 0.0)),
)

_ONE_SPELLINGS = (1, "1", "|1⟩", "|1>")


def describe_gate(name: str) -> str:
    return GATE_DESCRIPTIONS.get(name, DEFAULT_GATE_DESCRIPTION)


def gate_from_name(name: str) -> Callable[[BlochVector], BlochVector]:
    """Return the transform for ``name`` or raise :class:`InvalidGateError`.

    Use this wherever the gate name comes from outside the program (HTTP
    bodies, command lines).  :meth:`StateEngine.apply_gate` stays permissive.
    """
    try:
        return GATES[name]
    except (KeyError, TypeError):
        raise InvalidGateError(name) from None


def normalize_vector(v: BlochVector) -> BlochVector:
    """Return ``v`` scaled to unit length.  The zero vector is returned as is."""
    norm = math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z) or 1.0
    return BlochVector(v.x / norm, v.y / norm, v.z / norm)


def polar_coordinates(v: BlochVector) -> Tuple[float, float]:
    """Return ``(theta, phi)`` of ``v`` with the pole along Z.

    ``theta`` is ``acos(z)`` with ``z`` clamped to ``[-1, 1]`` so rounding can
    not push it out of the domain.  ``phi`` is ``atan2(y, x)`` except at the
    poles, where the azimuth is undefined and is reported as exactly ``0``.
    """
    theta = math.acos(max(-1.0, min(1.0, v.z)))
    if abs(v.x) < POLE_EPSILON and abs(v.y) < POLE_EPSILON:
        phi = 0.0
    else:
        phi = math.atan2(v.y, v.x)
    return theta, phi


def _fixed3(value: float) -> str:
    # adding 0.0 turns -0.0 into 0.0
    return f"{value + 0.0:.3f}"


def format_vector(v: BlochVector) -> str:
    return f"({_fixed3(v.x)}, {_fixed3(v.y)}, {_fixed3(v.z)})"


def measurement_probabilities(v: BlochVector) -> Dict[str, float]:
    """Return the Born rule probabilities of measuring ``0`` and ``1``."""
    p0 = min(1.0, max(0.0, (1.0 + v.z) / 2))
    return {"0": p0, "1": 1.0 - p0}


def nearest_basis_label(v: BlochVector, tol: float = LABEL_TOLERANCE) -> Optional[str]:
    """Return the cardinal state label ``v`` sits on, or ``None``."""
    for label, target in BASIS_LABELS:
        if all(abs(a - b) < tol for a, b in zip(v, target)):
            return label
    return None


def visualize_probabilities(v: BlochVector, width: int = 40) -> List[str]:
    """Print and return a small text bar chart of the measurement odds."""
    lines = []
    for outcome, p in measurement_probabilities(v).items():
        bar = "#" * int(round(p * width))
        lines.append(f"|{outcome}> {p:6.3f} {bar}".rstrip())
    for line in lines:
        print(line)
    return lines


class StateEngine:
    """Live Bloch vector with bounded undo history and change notification.

    All commands are total: unknown gate names and undo on an empty history
    never raise.  An unknown gate still records a history entry, so it costs
    one undo step like any other command.
    """

    def __init__(self, history_limit: int = MAX_HISTORY):
        self._vector: BlochVector = ZERO_STATE
        self._history: Deque[BlochVector] = deque(maxlen=history_limit)
        self._listeners: List[Callable[[], None]] = []

    # -- notification -----------------------------------------------------

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    # -- commands ---------------------------------------------------------

    def _push_history(self) -> None:
        self._history.append(self._vector)

    def apply_gate(self, name: str) -> None:
        """Apply gate ``name`` and renormalise the result."""
        self._push_history()
        transform = GATES.get(name) if isinstance(name, str) else None
        if transform is None:
            logger.warning("Ignoring unknown gate %r", name)
            staged = self._vector
        else:
            staged = transform(self._vector)
        self._vector = normalize_vector(staged)
        logger.debug("Applied %s -> %s", name, format_vector(self._vector))
        self._notify()

    def reset_to(self, basis: Union[int, str]) -> None:
        """Jump straight to ``|0>`` or ``|1>``.  Anything not naming ``|1>`` means ``|0>``."""
        self._push_history()
        self._vector = ONE_STATE if basis in _ONE_SPELLINGS else ZERO_STATE
        logger.debug("Reset to %s", format_vector(self._vector))
        self._notify()

    def undo(self) -> bool:
        """Restore the most recent snapshot.  Returns ``False`` if there was none."""
        if not self._history:
            return False
        self._vector = self._history.pop()
        logger.debug("Undo -> %s (%d left)", format_vector(self._vector), len(self._history))
        self._notify()
        return True

    # -- queries ----------------------------------------------------------

    def current_vector(self) -> BlochVector:
        return self._vector

    def polar_coordinates(self) -> Tuple[float, float]:
        return polar_coordinates(self._vector)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    @property
    def history_depth(self) -> int:
        return len(self._history)

    @property
    def history_limit(self) -> int:
        return self._history.maxlen or 0

    def readout(self) -> Dict[str, object]:
        """Return everything a view needs to redraw after a state change."""
        v = self._vector
        theta, phi = polar_coordinates(v)
        return {
            "vector": [round(c, 3) + 0.0 for c in v],
            "theta": round(theta, 3),
            "phi": round(phi, 3) + 0.0,
            "display": {
                "vector": format_vector(v),
                "theta": _fixed3(theta),
                "phi": _fixed3(phi),
            },
            "probabilities": measurement_probabilities(v),
            "label": nearest_basis_label(v),
            "can_undo": self.can_undo,
            "history_depth": self.history_depth,
        }
