"""
Notification Service - best-effort push delivery to members.

Delivery is fire-and-forget: a failed push is logged and reported as
False, never raised into the workflow that triggered it.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable
from uuid import UUID

import httpx
from fastapi import BackgroundTasks

from pathway.core.config import settings
from pathway.db.enums import NotificationKind


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushMessage:
    member_id: UUID
    title: str
    body: str
    kind: NotificationKind

    def to_payload(self) -> dict:
        return {
            "member_id": str(self.member_id),
            "title": self.title,
            "body": self.body,
            "data": {"kind": self.kind.value},
        }


class NotificationDispatcher:
    """
    Push dispatcher.

    Posts JSON to the configured push gateway through one shared
    `httpx.Client`, each attempt bounded by `timeout`. Without a gateway
    URL messages are only logged.
    """

    def __init__(
        self,
        webhook_url: str = "",
        timeout: float = 3.0,
        client: httpx.Client | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def send(self, message: PushMessage) -> None:
        """Deliver one message. Raises on transport or gateway errors."""
        if not self.webhook_url:
            logger.info(
                "Push (log only) to member %s: %s - %s",
                message.member_id,
                message.title,
                message.body,
            )
            return
        response = self.client.post(self.webhook_url, json=message.to_payload())
        response.raise_for_status()

    def notify(
        self,
        member_id: UUID,
        title: str,
        body: str,
        kind: NotificationKind,
    ) -> bool:
        """Send a push, swallowing any failure. Returns True if delivered."""
        message = PushMessage(member_id=member_id, title=title, body=body, kind=kind)
        try:
            self.send(message)
        except Exception:
            logger.warning(
                "Push notification %s to member %s failed",
                kind.value,
                member_id,
                exc_info=True,
            )
            return False
        return True

    def notify_many(
        self,
        member_ids: Iterable[UUID],
        title: str,
        body: str,
        kind: NotificationKind,
    ) -> int:
        """Fan out the same message. Returns how many were delivered."""
        return sum(1 for member_id in member_ids if self.notify(member_id, title, body, kind))


class BackgroundDispatcher(NotificationDispatcher):
    """
    Defers delivery until after the response is sent.

    Workflows call `notify`/`notify_many` after their commit as usual; the
    wrapped dispatcher runs them as FastAPI background tasks, so a slow or
    failing gateway never holds up the request. Return values count queued
    messages, not delivered ones.
    """

    def __init__(self, dispatcher: NotificationDispatcher, background_tasks: BackgroundTasks):
        super().__init__(webhook_url=dispatcher.webhook_url, timeout=dispatcher.timeout)
        self.dispatcher = dispatcher
        self.background_tasks = background_tasks

    def notify(
        self,
        member_id: UUID,
        title: str,
        body: str,
        kind: NotificationKind,
    ) -> bool:
        self.background_tasks.add_task(self.dispatcher.notify, member_id, title, body, kind)
        return True

    def notify_many(
        self,
        member_ids: Iterable[UUID],
        title: str,
        body: str,
        kind: NotificationKind,
    ) -> int:
        member_ids = list(member_ids)
        if member_ids:
            self.background_tasks.add_task(
                self.dispatcher.notify_many, member_ids, title, body, kind
            )
        return len(member_ids)


@lru_cache(maxsize=1)
def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency returning the configured dispatcher."""
    return NotificationDispatcher(
        webhook_url=settings.PUSH_WEBHOOK_URL,
        timeout=settings.PUSH_TIMEOUT_SECONDS,
    )
