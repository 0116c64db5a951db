from agentdesk.chat.timeline import MessageTimeline
from agentdesk.chat.types import Message


def _msg(mid: str, content: str = "", role: str = "user") -> Message:
    return Message(role=role, content=content, id=mid)


def test_append_preserves_order_and_notifies_once():
    seen = []
    timeline = MessageTimeline(on_change=seen.append)

    timeline.append(_msg("a"), _msg("b", role="assistant"))

    assert [m.id for m in timeline] == ["a", "b"]
    assert len(seen) == 1
    assert [m.id for m in seen[0]] == ["a", "b"]


def test_update_replaces_by_id_in_place():
    timeline = MessageTimeline([_msg("a", "x"), _msg("b", "y"), _msg("c", "z")])

    updated = timeline.update("b", content="new")

    assert updated.id == "b"
    assert [m.content for m in timeline] == ["x", "new", "z"]


def test_update_missing_id_does_not_notify():
    seen = []
    timeline = MessageTimeline([_msg("a")], on_change=seen.append)

    assert timeline.update("zzz", content="new") is None
    assert seen == []


def test_remove_and_clear():
    timeline = MessageTimeline([_msg("a"), _msg("b")])

    assert timeline.remove("a") is True
    assert timeline.remove("a") is False
    assert "b" in timeline and "a" not in timeline

    timeline.clear()
    assert len(timeline) == 0


def test_snapshot_is_a_copy():
    timeline = MessageTimeline([_msg("a")])
    snap = timeline.snapshot()
    snap.append(_msg("b"))
    assert len(timeline) == 1
