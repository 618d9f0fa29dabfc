import logging

import pytest

from blochlab.cli import main, run_shell


@pytest.fixture(autouse=True)
def _drop_log_handlers():
    yield
    logging.getLogger("blochlab").handlers.clear()


def test_gates_listing(capsys):
    assert main(["gates"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert [line.split()[0] for line in out] == ["X", "Y", "Z", "H", "S", "T"]


def test_challenges_listing(capsys):
    assert main(["challenges"]) == 0
    out = capsys.readouterr().out
    assert "1. Reach |1⟩ (reach-one)" in out
    assert "5. Back to start (back-to-start)" in out


def test_run_prints_readout_after_each_gate(capsys):
    assert main(["run", "H", "Z"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "(0.000, 0.000, 1.000)  θ=0.000  φ=0.000  |0⟩",
        "(1.000, 0.000, 0.000)  θ=1.571  φ=0.000  |+⟩",
        "(-1.000, 0.000, 0.000)  θ=1.571  φ=3.142  |−⟩",
    ]


def test_run_with_passing_check(capsys):
    assert main(["run", "X", "H", "--check", "two-gates"]) == 0
    assert "two-gates: Success!" in capsys.readouterr().out


def test_run_with_failing_check(capsys):
    assert main(["run", "H", "X", "--check", "two-gates"]) == 1
    assert "Not quite. Hint:" in capsys.readouterr().out


def test_run_from_one(capsys):
    assert main(["run", "--from", "1", "--check", "reach-one"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("(0.000, 0.000, -1.000)")


def test_run_rejects_unknown_gate(capsys):
    assert main(["run", "H", "Q"]) == 2
    assert "unknown gate 'Q'" in capsys.readouterr().err


def test_run_rejects_unknown_challenge(capsys):
    assert main(["run", "--check", "nope"]) == 2
    assert "unknown challenge 'nope'" in capsys.readouterr().err


def test_shell_session(capsys):
    session = run_shell(["undo", "x", "check reach-one", "undo", "reset 1", "probs", "bogus", "quit", "h"])
    out = capsys.readouterr().out
    assert "nothing to undo" in out
    assert "reach-one: Success!" in out
    assert "|1>  1.000" in out
    assert "unknown command: bogus" in out
    assert session.completed == {"reach-one"}
    # "h" after quit is never applied
    assert session.engine.current_vector() == (0.0, 0.0, -1.0)


def test_openapi_command(tmp_path, capsys):
    path = tmp_path / "openapi.yaml"
    assert main(["openapi", str(path)]) == 0
    assert '"/sessions":' in path.read_text(encoding="utf-8")


def test_bad_log_level_exits_cleanly(capsys):
    assert main(["--log-level", "loud", "gates"]) == 2
    captured = capsys.readouterr()
    assert "unknown log level 'loud'" in captured.err
    assert "Traceback" not in captured.err
    assert captured.out == ""
