"""Notification dispatcher protocol.

Dispatch is best-effort and always happens after the financial transaction has
committed. notify_safely() is the only call site used by the services: it logs
and swallows failures so they never reach the financial result.
"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def notify(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        data: dict[str, Any],
    ) -> None: ...


async def notify_safely(
    dispatcher: NotificationDispatcher,
    user_id: str,
    notification_type: str,
    title: str,
    message: str,
    data: dict[str, Any],
) -> bool:
    """Dispatch one notification; return False (after logging) if it failed."""
    try:
        await dispatcher.notify(user_id, notification_type, title, message, data)
    except Exception:
        logger.exception(
            "Notification %s to user %s failed", notification_type, user_id
        )
        return False
    return True
