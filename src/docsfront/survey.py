"""Article survey widget.

States and transitions:

    idle --vote--> voted --submit--> submitted
                   voted --cancel--> idle

Voting emits one ``survey`` event carrying the vote. Submitting emits one
more carrying the vote and the entered comment/email. ``submitted`` is
terminal until the page is left; a navigation always starts a new widget
in ``idle``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Literal

from docsfront.analytics import PageEvents
from docsfront.logging import get_logger

logger = get_logger(__name__)

Vote = Literal["up", "down"]
SurveyPhase = Literal["idle", "voted", "submitted"]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_COMMENT_LENGTH = 5000


class SurveyTransitionError(RuntimeError):
    """Raised when a survey control is used in a phase that does not offer it."""


@dataclass(frozen=True)
class SurveyState:
    """Snapshot of the survey widget."""

    vote: Vote | None = None
    comment: str = ""
    email: str = ""
    phase: SurveyPhase = "idle"


class SurveyWidget:
    """Survey state machine for one page load."""

    def __init__(self, events: PageEvents) -> None:
        self._events = events
        self._state = SurveyState()

    @property
    def state(self) -> SurveyState:
        return self._state

    @property
    def phase(self) -> SurveyPhase:
        return self._state.phase

    @property
    def details_visible(self) -> bool:
        """Comment/email fields and the Send/Cancel buttons."""
        return self._state.phase == "voted"

    @property
    def thanks_visible(self) -> bool:
        return self._state.phase == "submitted"

    def vote(self, vote: Vote) -> bool:
        """Record a thumbs up or down.

        Returns True when an event was emitted. Clicking the already-selected
        vote again is a no-op.
        """
        if vote not in ("up", "down"):
            raise ValueError(f"unknown vote {vote!r}")
        if self._state.phase == "submitted":
            raise SurveyTransitionError("survey already submitted")
        if self._state.phase == "voted" and self._state.vote == vote:
            return False
        self._state = replace(self._state, vote=vote, phase="voted")
        self._events.survey(vote=vote == "up")
        logger.info("survey_voted", vote=vote)
        return True

    def set_comment(self, comment: str) -> None:
        self._require_voted("comment")
        if len(comment) > MAX_COMMENT_LENGTH:
            raise ValueError(f"comment too long (max {MAX_COMMENT_LENGTH} characters)")
        self._state = replace(self._state, comment=comment)

    def set_email(self, email: str) -> None:
        self._require_voted("email")
        self._state = replace(self._state, email=email.strip())

    def cancel(self) -> bool:
        """Discard entered details and return to ``idle`` without an event."""
        if self._state.phase == "idle":
            return False
        if self._state.phase == "submitted":
            raise SurveyTransitionError("survey already submitted")
        self._state = SurveyState()
        logger.info("survey_cancelled")
        return True

    def submit(self) -> bool:
        """Send vote and details; a second Send after submission is ignored."""
        if self._state.phase == "submitted":
            return False
        if self._state.phase == "idle" or self._state.vote is None:
            raise SurveyTransitionError("vote before submitting the survey")
        email = self._state.email
        if email and not _EMAIL_RE.match(email):
            raise SurveyTransitionError(f"{email!r} is not a valid email address")
        self._events.survey(
            vote=self._state.vote == "up",
            comment=self._state.comment,
            email=email,
        )
        self._state = replace(self._state, phase="submitted")
        logger.info("survey_submitted", vote=self._state.vote, has_email=bool(email))
        return True

    def reset(self) -> None:
        """Drop all state, as a navigation does."""
        self._state = SurveyState()

    def _require_voted(self, field_name: str) -> None:
        if self._state.phase != "voted":
            raise SurveyTransitionError(f"{field_name} is only editable after voting")
