import pytest

from blochlab.bloch_sim import BlochVector, StateEngine
from blochlab.challenges import (
    CHALLENGES,
    UnknownChallengeError,
    check_challenge,
    get_challenge,
)


def run(*commands):
    engine = StateEngine()
    for cmd in commands:
        if cmd in ("0", "1"):
            engine.reset_to(int(cmd))
        else:
            engine.apply_gate(cmd)
    return engine.current_vector()


def test_catalogue_order():
    assert [c.id for c in CHALLENGES] == [
        "reach-one",
        "superposition",
        "phase-flip",
        "two-gates",
        "back-to-start",
    ]


@pytest.mark.parametrize(
    "challenge_id,commands",
    [
        ("reach-one", ["X"]),
        ("reach-one", ["1"]),
        ("superposition", ["0", "H"]),
        ("phase-flip", ["H", "Z"]),
        ("two-gates", ["X", "H"]),
        ("back-to-start", []),
        ("back-to-start", ["X", "Z", "X"]),
    ],
)
def test_challenge_passes(challenge_id, commands):
    result = check_challenge(challenge_id, run(*commands))
    assert result.passed
    assert result.hint is None
    assert result.message == "Success!"


def test_hadamard_then_x_stays_on_plus():
    result = check_challenge("two-gates", run("H", "X"))
    assert not result.passed
    assert result.hint == get_challenge("two-gates").hint
    assert result.message == "Not quite. Hint: " + result.hint


def test_reach_one_fails_at_start():
    result = check_challenge("reach-one", run())
    assert not result.passed
    assert result.message == "Not quite. Hint: Click the X gate once."


def test_rechecking_gives_same_answer():
    v = run("X")
    assert check_challenge("reach-one", v) == check_challenge("reach-one", v)


def test_predicates_only_read_coordinates():
    v = BlochVector(0.0, 0.0, -0.995)
    assert check_challenge("reach-one", v).passed
    assert not check_challenge("superposition", v).passed


def test_unknown_challenge():
    with pytest.raises(UnknownChallengeError) as info:
        check_challenge("nope", run())
    assert str(info.value) == "unknown challenge 'nope'"
    assert isinstance(info.value, KeyError)


def test_to_dict_has_no_predicate():
    assert set(CHALLENGES[0].to_dict()) == {"id", "title", "description", "hint"}
