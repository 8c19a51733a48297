from __future__ import annotations

import base64
import logging
from typing import Any, Sequence

from google import genai
from google.genai import types

from tutorchat.config import Settings, get_settings
from tutorchat.errors import ConfigMissingError, TransportError
from tutorchat.schemas import AttachmentRef

logger = logging.getLogger(__name__)


def _is_model_not_found(e: Exception) -> bool:
    if getattr(e, "code", None) == 404:
        return True
    msg = str(e)
    return (
        "NOT_FOUND" in msg
        and ("was not found" in msg or "not found" in msg or "is not found" in msg)
        and ("Publisher Model" in msg or "models/" in msg or "Call ListModels" in msg)
    )


def _inline_parts(attachments: Sequence[AttachmentRef]) -> list[types.Part]:
    return [
        types.Part.from_bytes(data=base64.b64decode(a.encodedPayload), mime_type=a.mimeType)
        for a in attachments
    ]


class GeminiConversation:
    """
    One server-side chat. The system framing is fixed when the chat is created and
    applies to every later turn. If the configured model turns out not to exist, the
    first turn walks the fallback candidates; after a successful turn the model is pinned.
    """

    def __init__(self, client: genai.Client, *, system: str, candidates: list[str], temperature: float) -> None:
        self._client = client
        self._system = system
        self._candidates = candidates
        self._temperature = temperature
        self._pinned = False
        self.model = candidates[0]
        self._chat = self._create(self.model)

    def _create(self, model: str) -> Any:
        return self._client.aio.chats.create(
            model=model,
            config=types.GenerateContentConfig(
                system_instruction=self._system,
                temperature=self._temperature,
            ),
        )

    async def send(self, text: str, attachments: Sequence[AttachmentRef] = ()) -> str:
        message: Any = text
        if attachments:
            message = [*_inline_parts(attachments), types.Part(text=text)]

        remaining = list(self._candidates[self._candidates.index(self.model) + 1 :])
        while True:
            try:
                resp = await self._chat.send_message(message)
                break
            except Exception as e:
                if not self._pinned and remaining and _is_model_not_found(e):
                    logger.warning("Model %s not available, trying %s", self.model, remaining[0])
                    self.model = remaining.pop(0)
                    self._chat = self._create(self.model)
                    continue
                raise TransportError(f"Chat turn failed: {e}") from e

        self._pinned = True
        return getattr(resp, "text", None) or ""


class GeminiClient:
    """
    Supports two modes:
    - Vertex AI mode: GOOGLE_CLOUD_PROJECT + GOOGLE_CLOUD_LOCATION
    - API key mode (local/dev): GOOGLE_API_KEY
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.model = settings.model
        self.temperature = settings.temperature
        self._fallbacks = list(settings.fallback_models)

        if settings.api_key:
            self._mode = "api_key"
            self.client = genai.Client(api_key=settings.api_key)
        elif settings.project:
            self._mode = "vertex"
            # Uses ADC (service account) on Cloud Run
            self.client = genai.Client(vertexai=True, project=settings.project, location=settings.location)
        else:
            raise ConfigMissingError(
                "Missing config: set GOOGLE_API_KEY (local) or GOOGLE_CLOUD_PROJECT (+ optional GOOGLE_CLOUD_LOCATION) (Vertex/Cloud Run)."
            )

    def candidates(self) -> list[str]:
        out: list[str] = []
        for m in [self.model, *self._fallbacks]:
            if m and m not in out:
                out.append(m)
        return out

    def open_conversation(self, system: str) -> GeminiConversation:
        return GeminiConversation(
            self.client,
            system=system,
            candidates=self.candidates(),
            temperature=self.temperature,
        )

    async def generate_once(self, *, system: str, text: str, attachments: Sequence[AttachmentRef]) -> str:
        """Stateless request: no dialogue history, attachments inlined ahead of the text."""
        contents = [types.Content(role="user", parts=[*_inline_parts(attachments), types.Part(text=text)])]

        last_err: Exception | None = None
        for m in self.candidates():
            try:
                resp = await self.client.aio.models.generate_content(
                    model=m,
                    contents=contents,
                    config=types.GenerateContentConfig(
                        system_instruction=system,
                        temperature=self.temperature,
                    ),
                )
            except Exception as e:
                last_err = e
                if _is_model_not_found(e):
                    logger.warning("Model %s not available (%s mode)", m, self._mode)
                    continue
                raise TransportError(f"Single-turn request failed: {e}") from e
            return getattr(resp, "text", None) or ""

        raise TransportError(f"All model candidates failed. Last error: {last_err}")
