"""
Conversation session: one dialogue with the remote tutor model.

Owns the lazily-created remote conversation, the pending-attachment buffer, the draft
input, the transcript and the quiz engine. Sends are single-flight: a send attempted
while another is outstanding is rejected, not queued.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Sequence

from tutorchat.attachments import BatchResult, FileSource, prepare_batch
from tutorchat.config import Settings, get_settings
from tutorchat.errors import ConfigMissingError
from tutorchat.extractor import extract_span
from tutorchat.prompts import (
    CONFIG_MISSING_TEXT,
    FILE_DEFAULT_PROMPT,
    IMAGE_DEFAULT_PROMPT,
    NO_RESPONSE_TEXT,
    TRANSPORT_FAILURE_TEXT,
    build_system_framing,
)
from tutorchat.quiz import QuizEngine, playable_quiz
from tutorchat.schemas import (
    AttachmentKind,
    AttachmentRef,
    ContentKind,
    CourseContext,
    Message,
    Quiz,
    StructuredContent,
)
from tutorchat.transcript import Transcript

logger = logging.getLogger(__name__)


class Conversation(Protocol):
    async def send(self, text: str, attachments: Sequence[AttachmentRef] = ()) -> str: ...


class Collaborator(Protocol):
    def open_conversation(self, system: str) -> Conversation: ...

    async def generate_once(self, *, system: str, text: str, attachments: Sequence[AttachmentRef]) -> str: ...


CollaboratorFactory = Callable[[], Collaborator]


@dataclass(frozen=True)
class Turn:
    user: Message
    reply: Message
    raw: str


def _default_factory(settings: Settings) -> CollaboratorFactory:
    def factory() -> Collaborator:
        # Imported here so a session with an injected collaborator never touches google-genai.
        from tutorchat.gemini_client import GeminiClient

        return GeminiClient(settings)

    return factory


def build_reply(raw: str) -> tuple[Message, Quiz | None]:
    """Turn raw model text into the bot message, plus the quiz to run if there is one."""
    found = extract_span(raw)
    if found is None:
        return Message.from_bot(raw or NO_RESPONSE_TEXT), None

    content = found.content
    quiz: Quiz | None = None
    if content.kind == ContentKind.quiz:
        quiz = playable_quiz(content)
        if quiz is None:
            return Message.from_bot(raw), None
        content = StructuredContent(kind=ContentKind.quiz, data=quiz)

    text = found.prose(raw) or content.heading
    return Message.from_bot(text, widget=content), quiz


class TutorSession:
    def __init__(
        self,
        collaborator_factory: CollaboratorFactory | None = None,
        *,
        settings: Settings | None = None,
        course: CourseContext | None = None,
        session_id: str = "",
    ) -> None:
        self.settings = settings or get_settings()
        self.session_id = session_id
        self.course = course
        self._factory = collaborator_factory or _default_factory(self.settings)

        self.transcript = Transcript()
        self.quiz = QuizEngine(self.transcript)
        self.pending: list[AttachmentRef] = []
        self.draft = ""
        self.loading = False

        self._collaborator: Collaborator | None = None
        self._conversation: Conversation | None = None
        self._config_failed = False
        self._closed = False
        # Bumped by clear()/close(); a reply that resolves under an older epoch is dropped.
        self._epoch = 0

    # --- input buffers ---

    async def add_files(self, sources: Iterable[FileSource]) -> BatchResult:
        result = await prepare_batch(sources, limit=self.settings.max_attachment_bytes)
        self.pending.extend(result.accepted)
        return result

    def remove_attachment(self, index: int) -> AttachmentRef:
        return self.pending.pop(index)

    def append_dictation(self, text: str) -> str:
        text = text.strip()
        if text:
            self.draft = f"{self.draft} {text}" if self.draft else text
        return self.draft

    def set_course(self, course: CourseContext | None) -> None:
        """Takes effect when the remote conversation is (re)created."""
        self.course = course

    # --- remote conversation ---

    @property
    def has_conversation(self) -> bool:
        return self._conversation is not None

    def _ensure_collaborator(self) -> Collaborator:
        if self._collaborator is None:
            self._collaborator = self._factory()
        return self._collaborator

    def _ensure_conversation(self) -> Conversation:
        if self._conversation is None:
            system = build_system_framing(self.course)
            self._conversation = self._ensure_collaborator().open_conversation(system)
            logger.info("Remote conversation created (session=%s)", self.session_id)
        return self._conversation

    async def _request(self, text: str, attachments: list[AttachmentRef]) -> str:
        if any(a.kind == AttachmentKind.image for a in attachments):
            # Image turns are answered on their own, outside the running dialogue.
            return await self._ensure_collaborator().generate_once(
                system=build_system_framing(self.course),
                text=text.strip() or IMAGE_DEFAULT_PROMPT,
                attachments=attachments,
            )
        if attachments and not text.strip():
            text = FILE_DEFAULT_PROMPT
        return await self._ensure_conversation().send(text, attachments)

    def _rejection(self, text: str, attachments: list[AttachmentRef]) -> str | None:
        if self._closed:
            return "session closed"
        if self.loading:
            return "a send is already in flight"
        if self.quiz.active:
            return "a quiz is running"
        if self._config_failed:
            return "no credentials configured"
        if not text.strip() and not attachments:
            return "nothing to send"
        return None

    async def send(
        self, text: str | None = None, attachments: Sequence[AttachmentRef] | None = None
    ) -> Turn | None:
        """
        Send one user turn. `text=None` sends the draft; `attachments=None` sends the
        pending buffer. Returns None when the send is rejected or its reply is discarded.
        """
        text = self.draft if text is None else text
        files = list(self.pending if attachments is None else attachments)

        reason = self._rejection(text, files)
        if reason:
            logger.info("Send rejected: %s", reason)
            return None

        self.loading = True
        epoch = self._epoch
        self.draft = ""
        if attachments is None:
            self.pending = []
        user = self.transcript.append(Message.from_user(text, files))

        quiz: Quiz | None = None
        raw = ""
        try:
            raw = await self._request(text, files)
            reply, quiz = build_reply(raw)
        except ConfigMissingError as e:
            logger.error("Remote model is not configured: %s", e)
            self._config_failed = True
            reply = Message.from_bot(CONFIG_MISSING_TEXT)
        except Exception:
            logger.exception("Remote model call failed")
            reply = Message.from_bot(TRANSPORT_FAILURE_TEXT)
        finally:
            if epoch == self._epoch:
                self.loading = False

        if epoch != self._epoch:
            logger.info("Discarding reply that resolved after reset (session=%s)", self.session_id)
            return None

        self.transcript.append(reply)
        if quiz is not None:
            self.quiz.start(quiz)
        return Turn(user=user, reply=reply, raw=raw)

    # --- lifecycle ---

    def _reset(self) -> None:
        self._epoch += 1
        self._collaborator = None
        self._conversation = None
        self._config_failed = False
        self.pending = []
        self.draft = ""
        self.loading = False

    def clear(self) -> None:
        """Wipe the history and start over with a fresh remote conversation."""
        self._reset()
        self.transcript.clear()
        logger.info("Session cleared (session=%s)", self.session_id)

    def close(self) -> None:
        self._reset()
        self._closed = True
        logger.info("Session closed (session=%s)", self.session_id)

    @property
    def closed(self) -> bool:
        return self._closed
