from __future__ import annotations

import logging
from typing import Callable

from tutorchat.schemas import Message

logger = logging.getLogger(__name__)


class Transcript:
    """
    Append-only, ordered log of chat messages. `clear()` is the only way to remove
    anything, and it notifies listeners (the quiz engine drops its run).
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._clear_listeners: list[Callable[[], None]] = []

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    def all(self) -> list[Message]:
        return list(self._messages)

    def clear(self) -> None:
        self._messages = []
        for listener in self._clear_listeners:
            listener()
        logger.info("Transcript cleared")

    def on_clear(self, listener: Callable[[], None]) -> None:
        self._clear_listeners.append(listener)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(list(self._messages))
