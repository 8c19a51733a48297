from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def new_message_id() -> str:
    # Millisecond clock plus a random suffix: two messages in the same tick still differ.
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class Origin(str, Enum):
    user = "USER"
    bot = "BOT"


class AttachmentKind(str, Enum):
    image = "IMAGE"
    file = "FILE"


class ContentKind(str, Enum):
    quiz = "QUIZ"
    flashcards = "FLASHCARDS"
    roadmap = "ROADMAP"


class QuestionKind(str, Enum):
    multiple_choice = "multiple_choice"
    true_false = "true_false"


class AttachmentRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: AttachmentKind
    name: str
    mimeType: str
    previewHandle: str = Field(..., description="Locally renderable handle (data URL)")
    encodedPayload: str = Field(..., description="Base64 of the raw file bytes")


def _as_text(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, (int, float, bool)):
        return str(v)
    return v


class QuizQuestion(BaseModel):
    """One question as the model emits it: `question`, `type`, `options`, `correctIndex`, `explanation`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str = Field("", alias="question")
    kind: QuestionKind = Field(QuestionKind.multiple_choice, alias="type")
    options: list[str] = Field(default_factory=list)
    correctIndex: int = -1
    explanation: str = ""

    @field_validator("kind", mode="before")
    @classmethod
    def _known_kind(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in {k.value for k in QuestionKind}:
            return v.strip().lower()
        return QuestionKind.multiple_choice

    @field_validator("options", mode="before")
    @classmethod
    def _options_as_text(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_as_text(o) for o in v]
        return v

    @field_validator("prompt", "explanation", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Any:
        return _as_text(v)

    def is_playable(self) -> bool:
        if self.kind == QuestionKind.true_false and len(self.options) != 2:
            return False
        if len(self.options) < 2:
            return False
        return 0 <= self.correctIndex < len(self.options)


class Quiz(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    questions: list[QuizQuestion]


class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = ""
    body: str = Field("", alias="content")
    icon: str | None = None


class Flashcards(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str = ""
    cards: list[Flashcard]


class RoadmapStep(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str = Field("", alias="step")
    details: str = ""
    duration: str | None = None


class Roadmap(BaseModel):
    model_config = ConfigDict(frozen=True)

    goal: str = ""
    steps: list[RoadmapStep]


class StructuredContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ContentKind
    data: Union[Quiz, Flashcards, Roadmap]

    @property
    def heading(self) -> str:
        if isinstance(self.data, Quiz):
            return self.data.title
        if isinstance(self.data, Flashcards):
            return self.data.topic
        return self.data.goal


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_message_id)
    text: str = ""
    origin: Origin
    attachments: list[AttachmentRef] = Field(default_factory=list)
    widget: StructuredContent | None = None

    @model_validator(mode="after")
    def _user_has_no_widget(self) -> "Message":
        if self.origin == Origin.user and self.widget is not None:
            raise ValueError("user messages cannot carry a widget")
        return self

    @classmethod
    def from_user(cls, text: str, attachments: list[AttachmentRef] | None = None) -> "Message":
        return cls(text=text, origin=Origin.user, attachments=list(attachments or []))

    @classmethod
    def from_bot(cls, text: str, widget: StructuredContent | None = None) -> "Message":
        return cls(text=text, origin=Origin.bot, widget=widget)


# --- Attachment batch results ---


class NoticeReason(str, Enum):
    too_large = "TOO_LARGE"
    unreadable = "UNREADABLE"


class AttachmentNotice(BaseModel):
    name: str
    reason: NoticeReason
    detail: str = ""


# --- Quiz views ---


class QuizState(str, Enum):
    presenting = "PRESENTING"
    answered = "ANSWERED"
    completed = "COMPLETED"


class QuizView(BaseModel):
    title: str
    state: QuizState
    index: int
    total: int
    score: int
    selected: int | None = None
    question: QuizQuestion | None = None


class QuizSummary(BaseModel):
    title: str
    score: int
    total: int
    answered: int
    abandoned: bool = False


# --- HTTP ---


class CourseContext(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""


class SendRequest(BaseModel):
    text: str | None = Field(None, description="Omit to send the dictated draft")
    course: CourseContext | None = None


class DraftRequest(BaseModel):
    text: str


class DraftResponse(BaseModel):
    draft: str


class SendResponse(BaseModel):
    accepted: bool
    messages: list[Message] = Field(default_factory=list)
    quiz: QuizView | None = None


class AttachmentBatchResponse(BaseModel):
    accepted: list[AttachmentRef]
    notices: list[AttachmentNotice]
    pending: list[AttachmentRef]


class TranscriptResponse(BaseModel):
    messages: list[Message]
    loading: bool = False


class QuizSelectRequest(BaseModel):
    option: int = Field(..., ge=0)


class QuizActionResponse(BaseModel):
    quiz: QuizView | None = None
    summary: Message | None = None
