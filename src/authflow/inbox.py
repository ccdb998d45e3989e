"""
Inbox oracle.

InboxClient polls an external mail store for a message, on its own interval
(delivery lag is queue-bound, not render-bound), and deletes consumed
messages. MailosaurInbox is the Mailosaur REST implementation of the
InboxService protocol.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog

from authflow.errors import MessageNotFoundError, PollTimeoutError
from authflow.poller import wait_until

logger = structlog.get_logger(__name__)

MAILOSAUR_API_URL = "https://mailosaur.com/api"


@dataclass(frozen=True)
class InboxMessage:
    """One received email."""

    id: str
    recipient: str
    subject: str
    links: tuple[str, ...] = field(default_factory=tuple)

    @property
    def first_link(self) -> str | None:
        return self.links[0] if self.links else None


MessagePredicate = Callable[[InboxMessage], bool]


def subject_contains(text: str) -> MessagePredicate:
    """Match messages whose subject mentions text."""

    def matches(message: InboxMessage) -> bool:
        return text in message.subject

    return matches


@runtime_checkable
class InboxService(Protocol):
    """External mail store addressed by recipient and message id."""

    async def list_messages(self, recipient: str) -> list[InboxMessage]: ...

    async def delete_message(self, message_id: str) -> None: ...


class InboxClient:
    """Polls an InboxService for a matching message."""

    def __init__(self, service: InboxService, poll_interval_ms: int = 2000) -> None:
        self._service = service
        self._poll_interval = poll_interval_ms
        self._log = logger.bind(component="inbox_client")

    async def poll_for_message(
        self,
        recipient: str,
        predicate: MessagePredicate,
        timeout_ms: int,
    ) -> InboxMessage:
        """
        Wait for a message to recipient that satisfies predicate.

        Args:
            recipient: Address the message was sent to
            predicate: Match condition on the message
            timeout_ms: Total time budget in milliseconds

        Returns:
            The first matching message

        Raises:
            MessageNotFoundError: If nothing matched within timeout_ms
        """
        attempts = 0

        async def find_match() -> InboxMessage | None:
            nonlocal attempts
            attempts += 1
            messages = await self._service.list_messages(recipient)
            self._log.debug("Inbox polled", recipient=recipient, attempt=attempts, messages=len(messages))
            return next((m for m in messages if predicate(m)), None)

        self._log.info("Waiting for message", recipient=recipient, timeout_ms=timeout_ms)
        try:
            message = await wait_until(
                find_match,
                timeout_ms,
                self._poll_interval,
                description=f"message to {recipient}",
            )
        except PollTimeoutError as e:
            self._log.warning("No message arrived", recipient=recipient, elapsed_ms=e.elapsed_ms, attempts=attempts)
            raise MessageNotFoundError(recipient, e.elapsed_ms) from e

        self._log.info("Message received", recipient=recipient, message_id=message.id, subject=message.subject)
        return message

    async def delete_message(self, message_id: str) -> None:
        """Delete a message. Unknown or already-deleted ids are not an error."""
        await self._service.delete_message(message_id)
        self._log.info("Message deleted", message_id=message_id)


class MailosaurInbox:
    """
    InboxService backed by the Mailosaur REST API.

    Authentication is HTTP basic with the API key as username. Message
    summaries don't carry links, so each message is fetched in full once and
    kept for the life of the client.
    """

    def __init__(
        self,
        server_id: str,
        api_key: str,
        base_url: str = MAILOSAUR_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._server_id = server_id
        # Full message bodies by id; a message never changes once received
        self._details: dict[str, InboxMessage] = {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=(api_key, ""),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> MailosaurInbox:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_messages(self, recipient: str) -> list[InboxMessage]:
        response = await self._client.post(
            "/messages/search",
            params={"server": self._server_id},
            json={"sentTo": recipient},
        )
        response.raise_for_status()
        summaries = response.json().get("items", [])

        messages: list[InboxMessage] = []
        for summary in summaries:
            message_id = str(summary["id"])
            message = self._details.get(message_id)
            if message is None:
                detail = await self._client.get(f"/messages/{message_id}")
                if detail.status_code == httpx.codes.NOT_FOUND:
                    # Deleted between search and fetch
                    continue
                detail.raise_for_status()
                message = self._parse_message(detail.json(), recipient)
                self._details[message_id] = message
            messages.append(message)
        return messages

    async def delete_message(self, message_id: str) -> None:
        self._details.pop(message_id, None)
        response = await self._client.delete(f"/messages/{message_id}")
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.debug("Message already gone", message_id=message_id)
            return
        response.raise_for_status()

    @staticmethod
    def _parse_message(data: dict[str, Any], recipient: str) -> InboxMessage:
        html = data.get("html") or {}
        links = tuple(
            link["href"]
            for link in html.get("links", [])
            if isinstance(link, dict) and link.get("href")
        )
        to = data.get("to") or []
        address = to[0].get("email", recipient) if to and isinstance(to[0], dict) else recipient
        return InboxMessage(
            id=str(data["id"]),
            recipient=address,
            subject=data.get("subject", ""),
            links=links,
        )
