from __future__ import annotations

import pytest

from tutorchat.errors import InvalidSelection, NoActiveQuiz, QuizAlreadyActive
from tutorchat.quiz import QuizEngine, QuizRun, playable_quiz
from tutorchat.schemas import ContentKind, Origin, Quiz, QuizQuestion, QuizState, StructuredContent
from tutorchat.transcript import Transcript


def make_quiz(correct: list[int], title: str = "Practice") -> Quiz:
    return Quiz(
        title=title,
        questions=[
            QuizQuestion(question=f"Q{i}", options=["a", "b", "c"], correctIndex=c, explanation="")
            for i, c in enumerate(correct)
        ],
    )


@pytest.fixture
def transcript() -> Transcript:
    return Transcript()


@pytest.fixture
def engine(transcript) -> QuizEngine:
    return QuizEngine(transcript)


@pytest.mark.parametrize(
    "correct,answers",
    [
        ([1], [1]),
        ([0, 1, 2], [0, 1, 2]),
        ([0, 1, 2], [2, 2, 2]),
        ([0, 0, 0, 0], [1, 1, 1, 1]),
        ([2, 0, 1, 1], [2, 1, 1, 0]),
    ],
)
def test_score_counts_exact_matches(engine, transcript, correct, answers):
    engine.start(make_quiz(correct))
    summary = None
    for a in answers:
        engine.select(a)
        summary = engine.advance()

    expected = sum(1 for a, c in zip(answers, correct) if a == c)
    assert summary is not None
    assert f"{expected} / {len(correct)}" in summary.text
    assert not engine.active
    assert transcript.all() == [summary]


def test_single_question_flow(engine, transcript):
    view = engine.start(make_quiz([1]))
    assert view.state == QuizState.presenting
    assert view.index == 0

    view = engine.select(1)
    assert view.state == QuizState.answered
    assert view.score == 1
    assert view.selected == 1

    summary = engine.advance()
    assert summary.origin == Origin.bot
    assert summary.widget is None
    assert "1 / 1" in summary.text
    assert engine.view() is None


def test_second_selection_is_ignored(engine):
    engine.start(make_quiz([0, 1]))
    engine.select(0)
    view = engine.select(2)

    assert view.selected == 0
    assert view.score == 1
    assert view.state == QuizState.answered


def test_advance_requires_an_answer(engine):
    engine.start(make_quiz([0, 1]))
    assert engine.advance() is None
    view = engine.view()
    assert view.state == QuizState.presenting
    assert view.index == 0


def test_advance_moves_to_next_question(engine):
    engine.start(make_quiz([0, 1]))
    engine.select(0)
    assert engine.advance() is None

    view = engine.view()
    assert view.index == 1
    assert view.selected is None
    assert view.state == QuizState.presenting
    assert view.question.prompt == "Q1"


def test_abandon_reports_answered_questions_only(engine, transcript):
    engine.start(make_quiz([0, 1, 2, 0]))
    engine.select(0)
    engine.advance()
    engine.select(0)
    engine.advance()

    summary = engine.abandon()

    assert "1 / 4" in summary.text
    assert "answered 2 of 4" in summary.text
    assert not engine.active
    assert transcript.all() == [summary]


def test_abandon_after_answer_counts_it(engine):
    engine.start(make_quiz([0, 1]))
    engine.select(0)
    summary = engine.abandon()

    assert "1 / 2" in summary.text
    assert "answered 1 of 2" in summary.text


def test_only_one_quiz_at_a_time(engine):
    engine.start(make_quiz([0]))
    with pytest.raises(QuizAlreadyActive):
        engine.start(make_quiz([1]))


def test_actions_without_a_quiz(engine):
    with pytest.raises(NoActiveQuiz):
        engine.select(0)
    with pytest.raises(NoActiveQuiz):
        engine.advance()
    with pytest.raises(NoActiveQuiz):
        engine.abandon()


def test_out_of_range_selection(engine):
    engine.start(make_quiz([0]))
    with pytest.raises(InvalidSelection):
        engine.select(3)
    assert engine.view().state == QuizState.presenting


def test_clear_discards_without_summary(engine, transcript):
    engine.start(make_quiz([0, 1]))
    engine.select(0)
    transcript.clear()

    assert not engine.active
    assert transcript.all() == []


def test_run_rejects_empty_quiz():
    with pytest.raises(ValueError):
        QuizRun(Quiz(title="empty", questions=[]))


def test_playable_quiz_drops_bad_questions():
    quiz = Quiz(
        title="mixed",
        questions=[
            QuizQuestion(question="ok", options=["a", "b"], correctIndex=1),
            QuizQuestion(question="index too big", options=["a", "b"], correctIndex=2),
            QuizQuestion(question="negative", options=["a", "b"], correctIndex=-1),
            QuizQuestion(question="one option", options=["a"], correctIndex=0),
            QuizQuestion(question="tf with three", type="true_false", options=["T", "F", "?"], correctIndex=0),
            QuizQuestion(question="tf", type="true_false", options=["T", "F"], correctIndex=0),
        ],
    )
    result = playable_quiz(StructuredContent(kind=ContentKind.quiz, data=quiz))

    assert [q.prompt for q in result.questions] == ["ok", "tf"]
    assert result.title == "mixed"


def test_playable_quiz_none_when_nothing_left():
    quiz = Quiz(title="bad", questions=[QuizQuestion(question="x", options=["a", "b"], correctIndex=5)])
    assert playable_quiz(StructuredContent(kind=ContentKind.quiz, data=quiz)) is None
    assert playable_quiz(StructuredContent(kind=ContentKind.quiz, data=Quiz(questions=[]))) is None
    assert playable_quiz(None) is None
