"""Fire-and-forget signals for moderation and role changes.

Sinks stand in for the collaborators that react to a decision (user
notifications, analytics, summary generation). They are called after the
decision is durable and can never change it: a failing sink is logged and
skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from review_filter.db.time import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    """Something an administrator (or the promotion check) just did."""

    event: str
    subject_kind: str
    subject_id: str
    actor_id: str | None
    recipient_id: str | None
    previous_value: str | None = None
    new_value: str | None = None
    reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)


NoticeSink = Callable[[Notice], None]


def log_sink(notice: Notice) -> None:
    """Default sink: record the notice in the application log."""
    logger.info(
        "%s %s %s: %s -> %s (actor=%s, recipient=%s)",
        notice.event,
        notice.subject_kind,
        notice.subject_id,
        notice.previous_value,
        notice.new_value,
        notice.actor_id,
        notice.recipient_id,
    )


class Notifier:
    """Dispatches notices to every registered sink."""

    def __init__(self, sinks: list[NoticeSink] | None = None) -> None:
        self._sinks: list[NoticeSink] = list(sinks or [])

    def register(self, sink: NoticeSink) -> None:
        self._sinks.append(sink)

    def unregister(self, sink: NoticeSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def emit(self, notice: Notice) -> None:
        for sink in list(self._sinks):
            try:
                sink(notice)
            except Exception:
                logger.warning(
                    "Notification sink %r failed for %s %s",
                    sink,
                    notice.event,
                    notice.subject_id,
                    exc_info=True,
                )


_notifier = Notifier([log_sink])


def get_notifier() -> Notifier:
    """Return the process-wide notifier."""
    return _notifier
