"""DbNotificationDispatcher — persists notifications in their own session.

Never shares the caller's session: a failing insert here cannot touch the
already-committed settlement.
"""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.ws_common.database import async_session_factory

_INSERT_NOTIFICATION_SQL = text("""
    INSERT INTO notifications (user_id, notification_type, title, message, data)
    VALUES (:user_id, :notification_type, :title, :message, :data)
""")


class DbNotificationDispatcher:
    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        self._session_factory = session_factory or async_session_factory

    async def notify(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        data: dict[str, Any],
    ) -> None:
        async with self._session_factory() as db:
            await db.execute(
                _INSERT_NOTIFICATION_SQL,
                {
                    "user_id": user_id,
                    "notification_type": notification_type,
                    "title": title,
                    "message": message,
                    "data": json.dumps(data, default=str),
                },
            )
            await db.commit()
