import pytest
from pydantic import ValidationError

from blochlab.config import Settings
from blochlab.session import Session, SessionStore, UnknownSessionError


def test_session_marks_completion_once():
    session = Session()
    assert not session.check_challenge("reach-one").passed
    assert session.completed == set()
    session.apply_gate("X")
    assert session.check_challenge("reach-one").passed
    session.apply_gate("X")
    # completion is never withdrawn even though the check now fails
    assert not session.check_challenge("reach-one").passed
    assert session.completed == {"reach-one"}


def test_completed_in_catalogue_order():
    session = Session()
    session.check_challenge("back-to-start")
    session.apply_gate("X")
    session.check_challenge("reach-one")
    assert session.completed_in_order() == ["reach-one", "back-to-start"]


def test_log_records_commands():
    session = Session()
    session.apply_gate("H")
    session.reset_to(1)
    assert session.undo()
    assert session.undo()
    assert not session.undo()
    assert [e["command"] for e in session.log] == ["gate H", "reset 1", "undo", "undo"]
    assert session.log[0]["vector"] == "(1.000, 0.000, 0.000)"
    assert session.log[-1]["vector"] == "(0.000, 0.000, 1.000)"


def test_snapshot_shape():
    session = Session("abc")
    snap = session.snapshot()
    assert snap["session_id"] == "abc"
    assert snap["completed"] == []
    assert snap["state"]["display"]["vector"] == "(0.000, 0.000, 1.000)"


def test_sessions_do_not_share_state():
    store = SessionStore()
    a, b = store.create(), store.create()
    a.apply_gate("X")
    a.check_challenge("reach-one")
    assert b.engine.current_vector() == (0.0, 0.0, 1.0)
    assert b.completed == set()
    assert a.id != b.id


def test_store_get_and_delete():
    store = SessionStore()
    session = store.create()
    assert store.get(session.id) is session
    assert session.id in store
    store.delete(session.id)
    assert len(store) == 0
    with pytest.raises(UnknownSessionError):
        store.get(session.id)
    with pytest.raises(UnknownSessionError):
        store.delete(session.id)


def test_store_evicts_oldest():
    store = SessionStore(Settings(max_sessions=2))
    first = store.create()
    second = store.create()
    third = store.create()
    assert len(store) == 2
    assert first.id not in store
    assert second.id in store and third.id in store


def test_store_uses_history_limit():
    store = SessionStore(Settings(history_limit=3))
    session = store.create()
    for _ in range(5):
        session.apply_gate("S")
    assert session.engine.history_depth == 3


def test_settings_from_env():
    settings = Settings.from_env(
        {"BLOCHLAB_HISTORY_LIMIT": "5", "BLOCHLAB_LOG_LEVEL": "debug", "BLOCHLAB_LOG_FILE": "", "BLOCHLAB_LOG_LIMIT": "50"}
    )
    assert settings.history_limit == 5
    assert settings.max_sessions == 256
    assert settings.log_limit == 50
    assert settings.log_level == "DEBUG"
    assert settings.log_file is None


def test_settings_defaults():
    settings = Settings.from_env({})
    assert settings.history_limit == 20
    assert settings.log_level == "INFO"


@pytest.mark.parametrize(
    "env",
    [
        {"BLOCHLAB_HISTORY_LIMIT": "0"},
        {"BLOCHLAB_MAX_SESSIONS": "many"},
        {"BLOCHLAB_LOG_LIMIT": "0"},
        {"BLOCHLAB_LOG_LEVEL": "loud"},
    ],
)
def test_settings_reject_bad_values(env):
    with pytest.raises(ValidationError):
        Settings.from_env(env)


def test_log_keeps_only_latest_entries():
    store = SessionStore(Settings(log_limit=5))
    session = store.create()
    for _ in range(1000):
        session.apply_gate("X")
    session.apply_gate("H")
    assert len(session.log) == 5
    assert session.log[-1]["command"] == "gate H"
    assert session.snapshot()["log_size"] == 5


def test_snapshot_reports_creation_time():
    session = Session()
    assert session.snapshot()["created"] == session.created.isoformat()
