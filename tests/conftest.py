from __future__ import annotations

import asyncio
import json

import pytest

from tutorchat.config import Settings
from tutorchat.session import TutorSession


class FakeConversation:
    def __init__(self, owner: "FakeCollaborator", system: str) -> None:
        self.owner = owner
        self.system = system
        self.turns: list[tuple[str, list]] = []

    async def send(self, text, attachments=()):
        self.turns.append((text, list(attachments)))
        return await self.owner.next_reply()


class FakeCollaborator:
    """In-memory stand-in for the Gemini adapter. Replies are consumed in order."""

    def __init__(self, replies=None) -> None:
        self.replies = list(replies or [])
        self.conversations: list[FakeConversation] = []
        self.single_turns: list[dict] = []
        self.gate: asyncio.Event | None = None

    def open_conversation(self, system):
        conv = FakeConversation(self, system)
        self.conversations.append(conv)
        return conv

    async def generate_once(self, *, system, text, attachments):
        self.single_turns.append({"system": system, "text": text, "attachments": list(attachments)})
        return await self.next_reply()

    async def next_reply(self):
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply


QUIZ_PAYLOAD = {
    "title": "Arithmetic",
    "questions": [
        {
            "question": "2+2?",
            "type": "multiple_choice",
            "options": ["3", "4"],
            "correctIndex": 1,
            "explanation": "basic arithmetic",
        }
    ],
}


def fenced(obj, prefix: str = "Sure! ", suffix: str = "") -> str:
    return f"{prefix}```json\n{json.dumps(obj, ensure_ascii=False)}\n```{suffix}"


@pytest.fixture
def collaborator() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def settings() -> Settings:
    return Settings(max_attachment_bytes=64)


@pytest.fixture
def session(collaborator, settings) -> TutorSession:
    return TutorSession(lambda: collaborator, settings=settings, session_id="test")
