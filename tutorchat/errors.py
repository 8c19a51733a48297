from __future__ import annotations


class ConfigMissingError(RuntimeError):
    """No credentials for the remote model. Fatal for the session that hit it."""


class TransportError(RuntimeError):
    """The remote call failed; the conversation stays usable for the next turn."""


class AttachmentTooLarge(ValueError):
    def __init__(self, name: str, size: int, limit: int) -> None:
        super().__init__(f"{name} is {size} bytes; the limit is {limit} bytes")
        self.name = name
        self.size = size
        self.limit = limit


class QuizError(RuntimeError):
    pass


class QuizAlreadyActive(QuizError):
    pass


class NoActiveQuiz(QuizError):
    pass


class InvalidSelection(QuizError):
    pass
