from __future__ import annotations

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from tutorchat.attachments import FileSource
from tutorchat.config import get_settings
from tutorchat.errors import InvalidSelection, QuizError
from tutorchat.log import set_session_id
from tutorchat.memory import SessionStore
from tutorchat.prompts import SUGGESTIONS
from tutorchat.schemas import (
    AttachmentBatchResponse,
    AttachmentRef,
    DraftRequest,
    DraftResponse,
    QuizActionResponse,
    QuizSelectRequest,
    QuizView,
    SendRequest,
    SendResponse,
    TranscriptResponse,
)
from tutorchat.session import TutorSession

app = FastAPI(title="Tutor Chat API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_settings = get_settings()
store = SessionStore(maxsize=_settings.max_sessions, ttl_seconds=_settings.session_ttl_seconds)


async def get_store() -> SessionStore:
    return store


def _session(store: SessionStore, session_id: str) -> TutorSession:
    set_session_id(session_id)
    return store.get_or_create(session_id)


def _existing(store: SessionStore, session_id: str) -> TutorSession:
    set_session_id(session_id)
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return session


def _quiz_error(e: QuizError) -> HTTPException:
    status = 422 if isinstance(e, InvalidSelection) else 409
    return HTTPException(status_code=status, detail=str(e))


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.get("/suggestions")
def suggestions() -> dict:
    return {"suggestions": SUGGESTIONS}


@app.post("/sessions/{session_id}/attachments", response_model=AttachmentBatchResponse)
async def add_attachments(
    session_id: str,
    files: list[UploadFile] = File(...),
    store: SessionStore = Depends(get_store),
) -> AttachmentBatchResponse:
    session = _session(store, session_id)
    limit = session.settings.max_attachment_bytes

    sources: list[FileSource] = []
    for f in files:
        size = f.size or 0
        # Known-oversized uploads are rejected on their declared size without reading them.
        data = b"" if size > limit else await f.read()
        sources.append(
            FileSource(
                name=f.filename or "file",
                byteSize=max(size, len(data)),
                mimeType=f.content_type or "",
                rawBytes=data,
            )
        )

    result = await session.add_files(sources)
    return AttachmentBatchResponse(accepted=result.accepted, notices=result.notices, pending=session.pending)


@app.delete("/sessions/{session_id}/attachments/{index}", response_model=list[AttachmentRef])
async def remove_attachment(session_id: str, index: int, store: SessionStore = Depends(get_store)) -> list[AttachmentRef]:
    session = _existing(store, session_id)
    if not 0 <= index < len(session.pending):
        raise HTTPException(status_code=404, detail=f"No pending attachment at index {index}")
    session.remove_attachment(index)
    return session.pending


@app.post("/sessions/{session_id}/messages", response_model=SendResponse)
async def send_message(session_id: str, req: SendRequest, store: SessionStore = Depends(get_store)) -> SendResponse:
    session = _session(store, session_id)
    if req.course is not None and not session.has_conversation:
        session.set_course(req.course)

    turn = await session.send(req.text)
    if turn is None:
        return SendResponse(accepted=False, quiz=session.quiz.view())
    return SendResponse(accepted=True, messages=[turn.user, turn.reply], quiz=session.quiz.view())


@app.post("/sessions/{session_id}/draft", response_model=DraftResponse)
async def append_draft(session_id: str, req: DraftRequest, store: SessionStore = Depends(get_store)) -> DraftResponse:
    # Dictated text accumulates here; a message sent without text sends the draft.
    session = _session(store, session_id)
    return DraftResponse(draft=session.append_dictation(req.text))


@app.get("/sessions/{session_id}/transcript", response_model=TranscriptResponse)
async def get_transcript(session_id: str, store: SessionStore = Depends(get_store)) -> TranscriptResponse:
    session = _existing(store, session_id)
    return TranscriptResponse(messages=session.transcript.all(), loading=session.loading)


@app.delete("/sessions/{session_id}/transcript", response_model=TranscriptResponse)
async def clear_transcript(session_id: str, store: SessionStore = Depends(get_store)) -> TranscriptResponse:
    session = _existing(store, session_id)
    session.clear()
    return TranscriptResponse(messages=[])


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str, store: SessionStore = Depends(get_store)) -> dict:
    set_session_id(session_id)
    return {"closed": store.close(session_id)}


@app.get("/sessions/{session_id}/quiz", response_model=QuizView | None)
async def get_quiz(session_id: str, store: SessionStore = Depends(get_store)) -> QuizView | None:
    return _existing(store, session_id).quiz.view()


@app.post("/sessions/{session_id}/quiz/select", response_model=QuizActionResponse)
async def quiz_select(session_id: str, req: QuizSelectRequest, store: SessionStore = Depends(get_store)) -> QuizActionResponse:
    session = _existing(store, session_id)
    try:
        view = session.quiz.select(req.option)
    except QuizError as e:
        raise _quiz_error(e)
    return QuizActionResponse(quiz=view)


@app.post("/sessions/{session_id}/quiz/advance", response_model=QuizActionResponse)
async def quiz_advance(session_id: str, store: SessionStore = Depends(get_store)) -> QuizActionResponse:
    session = _existing(store, session_id)
    try:
        summary = session.quiz.advance()
    except QuizError as e:
        raise _quiz_error(e)
    return QuizActionResponse(quiz=session.quiz.view(), summary=summary)


@app.post("/sessions/{session_id}/quiz/abandon", response_model=QuizActionResponse)
async def quiz_abandon(session_id: str, store: SessionStore = Depends(get_store)) -> QuizActionResponse:
    session = _existing(store, session_id)
    try:
        summary = session.quiz.abandon()
    except QuizError as e:
        raise _quiz_error(e)
    return QuizActionResponse(quiz=None, summary=summary)
