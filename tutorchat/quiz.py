"""
Quiz engine: one question at a time, PRESENTING -> ANSWERED -> next question, until
COMPLETED. The engine holds at most one run; its presence is the only "quiz active" flag.
"""

from __future__ import annotations

import logging

from tutorchat.errors import InvalidSelection, NoActiveQuiz, QuizAlreadyActive
from tutorchat.prompts import quiz_summary_text
from tutorchat.schemas import (
    Message,
    Quiz,
    QuizQuestion,
    QuizState,
    QuizSummary,
    QuizView,
    StructuredContent,
)
from tutorchat.transcript import Transcript

logger = logging.getLogger(__name__)


def playable_quiz(content: StructuredContent | None) -> Quiz | None:
    """
    Keep only questions the engine can score (valid correctIndex, enough options).
    Returns None when nothing playable is left.
    """
    if content is None or not isinstance(content.data, Quiz):
        return None
    quiz = content.data
    questions = [q for q in quiz.questions if q.is_playable()]
    dropped = len(quiz.questions) - len(questions)
    if dropped:
        logger.warning("Dropped %d malformed quiz question(s) from %r", dropped, quiz.title)
    if not questions:
        return None
    return Quiz(title=quiz.title, questions=questions)


class QuizRun:
    def __init__(self, quiz: Quiz) -> None:
        if not quiz.questions:
            raise ValueError("a quiz needs at least one question")
        self.quiz = quiz
        self.index = 0
        self.score = 0
        self.answered = 0
        self.selected: int | None = None
        self.state = QuizState.presenting

    @property
    def total(self) -> int:
        return len(self.quiz.questions)

    @property
    def question(self) -> QuizQuestion:
        return self.quiz.questions[self.index]

    def select(self, option: int) -> bool:
        """Record an answer. A second selection on the same question changes nothing."""
        if self.state != QuizState.presenting:
            return False
        if not 0 <= option < len(self.question.options):
            raise InvalidSelection(f"option {option} is not one of {len(self.question.options)} choices")
        self.selected = option
        self.answered += 1
        if option == self.question.correctIndex:
            self.score += 1
        self.state = QuizState.answered
        return True

    def advance(self) -> bool:
        # No skipping: an unanswered question stays on screen.
        if self.state != QuizState.answered:
            return False
        if self.index + 1 < self.total:
            self.index += 1
            self.selected = None
            self.state = QuizState.presenting
        else:
            self.state = QuizState.completed
        return True

    def summary(self, *, abandoned: bool = False) -> QuizSummary:
        return QuizSummary(
            title=self.quiz.title,
            score=self.score,
            total=self.total,
            answered=self.answered,
            abandoned=abandoned,
        )

    def view(self) -> QuizView:
        return QuizView(
            title=self.quiz.title,
            state=self.state,
            index=self.index,
            total=self.total,
            score=self.score,
            selected=self.selected,
            question=None if self.state == QuizState.completed else self.question,
        )


class QuizEngine:
    def __init__(self, transcript: Transcript) -> None:
        self._transcript = transcript
        self._run: QuizRun | None = None
        transcript.on_clear(self.discard)

    @property
    def active(self) -> bool:
        return self._run is not None

    def view(self) -> QuizView | None:
        return self._run.view() if self._run else None

    def _require_run(self) -> QuizRun:
        if self._run is None:
            raise NoActiveQuiz("no quiz is running")
        return self._run

    def start(self, quiz: Quiz) -> QuizView:
        if self._run is not None:
            raise QuizAlreadyActive("a quiz is already running")
        self._run = QuizRun(quiz)
        logger.info("Quiz started: %r (%d questions)", quiz.title, self._run.total)
        return self._run.view()

    def select(self, option: int) -> QuizView:
        run = self._require_run()
        run.select(option)
        return run.view()

    def advance(self) -> Message | None:
        """Move on from an answered question; returns the summary message once the quiz ends."""
        run = self._require_run()
        run.advance()
        if run.state == QuizState.completed:
            return self._finish(run, abandoned=False)
        return None

    def abandon(self) -> Message:
        run = self._require_run()
        run.state = QuizState.completed
        return self._finish(run, abandoned=True)

    def discard(self) -> None:
        if self._run is not None:
            logger.info("Quiz discarded without summary: %r", self._run.quiz.title)
        self._run = None

    def _finish(self, run: QuizRun, *, abandoned: bool) -> Message:
        s = run.summary(abandoned=abandoned)
        self._run = None
        logger.info("Quiz %s: %d / %d", "abandoned" if abandoned else "completed", s.score, s.total)
        text = quiz_summary_text(s.title, s.score, s.total, s.answered, s.abandoned)
        return self._transcript.append(Message.from_bot(text))
