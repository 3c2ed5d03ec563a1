import asyncio

from range_dashboard.backend import database
from range_dashboard.backend.metrics import compute_metrics
from range_dashboard.backend.state import Shot

SHOTS = [
    Shot(x=0.0, y=0.0, timestamp=10.0, detection_id="a", confidence=0.9, class_name="hole"),
    Shot(x=3.0, y=4.0, timestamp=11.0, detection_id="b"),
]


def _run(coro):
    return asyncio.run(coro)


def test_create_and_get_session():
    _run(database.init_db())
    metrics = compute_metrics(SHOTS, elapsed=65)
    session_id = _run(database.create_session(SHOTS, metrics, advice=["Breathe."], skill_level="beginner"))

    session = _run(database.get_session(session_id))
    assert session["id"] == session_id
    assert session["shot_count"] == 2
    assert session["advice"] == ["Breathe."]
    assert session["skill_level"] == "beginner"
    assert session["metrics"]["group_size"] == 5.0
    assert session["metrics"]["group_center"] == {"x": 1.5, "y": 2.0}
    assert session["metrics"]["time"] == 65.0
    assert [s["detection_id"] for s in session["shots"]] == ["a", "b"]
    assert session["shots"][0]["class_name"] == "hole"
    assert session["date"]


def test_missing_session_is_none():
    _run(database.init_db())
    assert _run(database.get_session(404)) is None


def test_ids_follow_creation_order_and_list_is_newest_first():
    _run(database.init_db())
    metrics = compute_metrics(SHOTS)
    first = _run(database.create_session(SHOTS, metrics))
    second = _run(database.create_session(SHOTS[:1], compute_metrics(SHOTS[:1])))
    assert second > first

    result = _run(database.list_sessions())
    assert result["total"] == 2
    assert [s["id"] for s in result["sessions"]] == [second, first]
    assert result["sessions"][0]["advice"] == []

    page = _run(database.list_sessions(limit=1, offset=1))
    assert [s["id"] for s in page["sessions"]] == [first]
