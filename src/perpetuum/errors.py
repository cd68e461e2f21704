from typing import Optional


class PerpetuumError(Exception):
    """Base for everything perpetuum raises on purpose."""


class ScoreError(PerpetuumError, ValueError):
    """A score that cannot be scheduled."""


class UnknownNoteError(ScoreError):
    def __init__(self, note: str, where: str = "sequence") -> None:
        super().__init__(f"Unknown note {note!r} in {where}")
        self.note = note
        self.where = where


class InstrumentError(PerpetuumError):
    """An instrument document that cannot become a wave table."""


class InstrumentLoadError(InstrumentError):
    """
    The instrument transport refused us.

    ``body`` is the raw response text, ``status`` the HTTP status
    (None when the request never got a response).
    """

    def __init__(self, identifier: str, body: str, status: Optional[int] = None) -> None:
        super().__init__(f"Could not load instrument {identifier!r} (status {status}): {body}")
        self.identifier = identifier
        self.body = body
        self.status = status
