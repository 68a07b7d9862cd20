"""
Integrity Signal Tracker.

Ingests untrusted integrity signals from the browser client (security
events and tab visibility changes) into bounded per-session windows, and
summarizes them for the report prompt.

Signals are accepted while the session is ``created`` or ``in_progress``
and silently ignored once it is ``completed``.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from interview_core.core.config import Settings, get_settings
from interview_core.core.errors import SessionNotFound, ValidationFailed
from interview_core.models.interview import (
    InterviewSession,
    InterviewStatus,
    SecurityEvent,
    SecurityEventType,
    TabSwitchEvent,
    TabSwitchType,
    utc_now,
)
from interview_core.providers.session_store import SessionStoreProvider, get_session_store

logger = logging.getLogger(__name__)


# Events mirrored to the durable audit trail
CRITICAL_EVENTS = frozenset({
    SecurityEventType.DEVTOOLS_DETECTED.value,
    SecurityEventType.SCREENSHOT_ATTEMPT.value,
    SecurityEventType.CLIPBOARD_WRITE.value,
    SecurityEventType.CLIPBOARD_WRITE_ATTEMPT.value,
    SecurityEventType.KEYBOARD_SHORTCUT_BLOCKED.value,
    SecurityEventType.RIGHT_CLICK_BLOCKED.value,
})

MAX_EVENT_NAME_LENGTH = 64

# Blur counts above which the client is warned
TAB_SWITCH_WARNING_THRESHOLD = 3
TAB_SWITCH_FLAG_THRESHOLD = 5
TAB_SWITCH_WARNING = "Multiple tab switches detected. Please stay focused."
TAB_SWITCH_FLAG_WARNING = "Excessive tab switching detected. Interview may be flagged."


@dataclass
class IntegrityContext:
    """Integrity signals of one session, as fed to the report prompt."""
    tab_switch_count: int = 0
    security_event_count: int = 0
    critical_events: List[str] = field(default_factory=list)
    events: List[SecurityEvent] = field(default_factory=list)

    @property
    def has_signals(self) -> bool:
        return self.tab_switch_count > 0 or self.security_event_count > 0


@dataclass
class IntegrityOutcome:
    """Result of ingesting one signal."""
    session_id: str
    ignored: bool = False
    tab_switch_count: int = 0
    security_event_count: int = 0
    warning: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return not self.ignored


class _SessionCompleted(Exception):
    """Aborts an ingestion write for a completed session."""


def count_blurs(events: List[TabSwitchEvent]) -> int:
    return sum(1 for e in events if e.type == TabSwitchType.BLUR.value)


def tab_switch_warning(blur_count: int) -> Optional[str]:
    if blur_count > TAB_SWITCH_FLAG_THRESHOLD:
        return TAB_SWITCH_FLAG_WARNING
    if blur_count > TAB_SWITCH_WARNING_THRESHOLD:
        return TAB_SWITCH_WARNING
    return None


def build_integrity_context(session: InterviewSession) -> IntegrityContext:
    """Summarize a session's retained integrity windows."""
    critical = [e.event for e in session.security_events if e.event in CRITICAL_EVENTS]
    return IntegrityContext(
        tab_switch_count=session.tab_switch_count,
        security_event_count=len(session.security_events),
        critical_events=critical,
        events=list(session.security_events),
    )


class IntegritySignalTracker:
    """
    Appends integrity signals to a session through the store's
    read-modify-write primitive.
    """

    def __init__(
        self,
        store: Optional[SessionStoreProvider] = None,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self.settings = settings or get_settings()

    @property
    def store(self) -> SessionStoreProvider:
        return self._store or get_session_store()

    async def _require_session(self, session_id: str) -> InterviewSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    @staticmethod
    def _ignored(session: InterviewSession) -> IntegrityOutcome:
        return IntegrityOutcome(
            session_id=session.id,
            ignored=True,
            tab_switch_count=session.tab_switch_count,
            security_event_count=len(session.security_events),
        )

    async def log_security_event(
        self,
        session_id: str,
        event: Any,
        timestamp: Optional[datetime] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> IntegrityOutcome:
        """
        Record one security event.

        Raises:
            ValidationFailed: event name missing, not a string or too long
            SessionNotFound: unknown session
        """
        if not isinstance(event, str) or not event.strip():
            raise ValidationFailed("Event type is required and must be a string")
        event = event.strip()
        if len(event) > MAX_EVENT_NAME_LENGTH:
            raise ValidationFailed(
                f"Event type must be at most {MAX_EVENT_NAME_LENGTH} characters"
            )

        session = await self._require_session(session_id)
        if session.status == InterviewStatus.COMPLETED.value:
            return self._ignored(session)

        record = SecurityEvent(
            event=event,
            timestamp=timestamp or utc_now(),
            details=dict(details or {}),
        )
        window = self.settings.security_event_window

        def append_event(current: InterviewSession) -> InterviewSession:
            if current.status == InterviewStatus.COMPLETED.value:
                raise _SessionCompleted()
            current.security_events = (current.security_events + [record])[-window:]
            return current

        try:
            updated = await self.store.update(session_id, append_event)
        except _SessionCompleted:
            # Completed between the read and the write
            return self._ignored(await self._require_session(session_id))

        logger.info(
            f"Security event logged for session {session_id}: {event} "
            f"(total={len(updated.security_events)}, status={updated.status})"
        )

        if event in CRITICAL_EVENTS:
            await self.store.log_audit(
                "security_event",
                "session",
                session_id,
                {
                    "event_type": event,
                    "timestamp": record.timestamp.isoformat(),
                    "details": record.details,
                },
            )

        return IntegrityOutcome(
            session_id=session_id,
            tab_switch_count=updated.tab_switch_count,
            security_event_count=len(updated.security_events),
        )

    async def log_tab_switch(
        self,
        session_id: str,
        switch_type: Any,
        timestamp: Optional[datetime] = None,
    ) -> IntegrityOutcome:
        """
        Record a tab visibility change and re-derive the blur count.

        Raises:
            ValidationFailed: type is not ``blur`` or ``focus``
            SessionNotFound: unknown session
        """
        allowed = {t.value for t in TabSwitchType}
        if not isinstance(switch_type, str) or switch_type not in allowed:
            raise ValidationFailed("Event type must be 'blur' or 'focus'")

        session = await self._require_session(session_id)
        if session.status == InterviewStatus.COMPLETED.value:
            return self._ignored(session)

        record = TabSwitchEvent(type=switch_type, timestamp=timestamp or utc_now())
        window = self.settings.tab_event_window

        def append_switch(current: InterviewSession) -> InterviewSession:
            if current.status == InterviewStatus.COMPLETED.value:
                raise _SessionCompleted()
            current.tab_switch_events = (current.tab_switch_events + [record])[-window:]
            current.tab_switch_count = count_blurs(current.tab_switch_events)
            return current

        try:
            updated = await self.store.update(session_id, append_switch)
        except _SessionCompleted:
            # Completed between the read and the write
            return self._ignored(await self._require_session(session_id))

        logger.debug(
            f"Tab switch ({switch_type}) for session {session_id}, blur count {updated.tab_switch_count}"
        )

        return IntegrityOutcome(
            session_id=session_id,
            tab_switch_count=updated.tab_switch_count,
            security_event_count=len(updated.security_events),
            warning=tab_switch_warning(updated.tab_switch_count),
        )


# Global tracker instance (lazy loaded)
_integrity_tracker: Optional[IntegritySignalTracker] = None


def get_integrity_tracker() -> IntegritySignalTracker:
    """Get or create the global integrity tracker."""
    global _integrity_tracker
    if _integrity_tracker is None:
        _integrity_tracker = IntegritySignalTracker()
    return _integrity_tracker
