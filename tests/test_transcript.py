from __future__ import annotations

import pytest
from pydantic import ValidationError

from tutorchat.schemas import ContentKind, Message, Origin, Roadmap, StructuredContent
from tutorchat.transcript import Transcript


def test_append_keeps_call_order():
    t = Transcript()
    a = t.append(Message.from_user("hi"))
    b = t.append(Message.from_bot("hello"))

    assert t.all() == [a, b]
    assert len(t) == 2
    assert list(t) == [a, b]


def test_all_returns_a_copy():
    t = Transcript()
    t.append(Message.from_user("hi"))
    t.all().clear()
    assert len(t) == 1


def test_clear_notifies_listeners():
    t = Transcript()
    calls = []
    t.on_clear(lambda: calls.append("cleared"))
    t.append(Message.from_bot("x"))

    t.clear()

    assert t.all() == []
    assert calls == ["cleared"]


def test_messages_are_immutable():
    m = Message.from_user("hi")
    with pytest.raises(ValidationError):
        m.text = "changed"


def test_user_message_cannot_carry_widget():
    widget = StructuredContent(kind=ContentKind.roadmap, data=Roadmap(goal="g", steps=[]))
    with pytest.raises(ValidationError):
        Message(origin=Origin.user, text="x", widget=widget)

    assert Message.from_bot("plan", widget=widget).widget is widget


def test_ids_are_unique():
    ids = {Message.from_user("x").id for _ in range(500)}
    assert len(ids) == 500
