"""In-memory registry of active wizard sessions."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

from store_survey.services.wizard_service import WizardController

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """No live wizard session has this id."""

    pass


class WizardSessionStore:
    """
    Maps session ids to wizard controllers.

    Answers live only here until final submission. Sessions idle for longer
    than ``ttl`` are dropped on the next access.
    """

    def __init__(
        self,
        ttl: timedelta,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.ttl = ttl
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._sessions: dict[str, tuple[WizardController, datetime]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _prune(self) -> None:
        cutoff = self._now() - self.ttl
        expired = [sid for sid, (_, seen) in self._sessions.items() if seen < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Expired %s idle survey sessions", len(expired))

    def create(self) -> WizardController:
        self._prune()
        session_id = secrets.token_urlsafe(16)
        controller = WizardController(session_id)
        self._sessions[session_id] = (controller, self._now())
        return controller

    def get(self, session_id: str) -> WizardController:
        self._prune()
        entry = self._sessions.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        controller, _ = entry
        self._sessions[session_id] = (controller, self._now())
        return controller
