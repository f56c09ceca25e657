"""Bot API transport over ``aiohttp``.

Every call is a JSON ``POST`` to ``{base_url}/bot{token}/{method}``. The
transport holds no polling state; the long-poll duration is controlled by
the ``timeout`` field of each ``getUpdates`` body, so the HTTP session has
no total timeout of its own. Cancelling the awaiting task aborts the
in-flight request.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aiohttp
import structlog

from telegram_trigger.core.domain.errors import (
    CONFLICT_STATUS,
    BotApiError,
    MalformedResponseError,
    PollingConflictError,
    TransportError,
)
from telegram_trigger.core.domain.updates import GetUpdatesRequest, PollResponse

logger = structlog.get_logger(__name__)

GET_UPDATES = "getUpdates"
DELETE_WEBHOOK = "deleteWebhook"


class BotApiTransport:
    """Issue Bot API calls for the polling loop.

    Args:
        base_url: Bot API origin, e.g. ``https://api.telegram.org``.
        access_token: Bot token. It is never written to logs or errors.
        session: Optional shared ``ClientSession``. An injected session is
            not closed by ``close``.
        connect_timeout: Seconds allowed for establishing a connection.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        session: aiohttp.ClientSession | None = None,
        connect_timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._session = session
        self._owns_session = session is None
        self._connect_timeout = connect_timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_updates(self, request: GetUpdatesRequest) -> PollResponse:
        """Call ``getUpdates`` and parse the reply envelope."""
        data = await self._call(GET_UPDATES, request.to_payload())
        return PollResponse.from_payload(data)

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        """Call ``deleteWebhook``; returns the Bot API ``result`` flag."""
        data = await self._call(
            DELETE_WEBHOOK, {"drop_pending_updates": drop_pending_updates}
        )
        return isinstance(data, dict) and data.get("result") is True

    async def close(self) -> None:
        """Close the owned HTTP session. Safe to call more than once."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _method_url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._access_token}/{method}"

    def _redact(self, text: str) -> str:
        return text.replace(self._access_token, "***") if self._access_token else text

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=None, sock_connect=self._connect_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        session = await self._get_session()
        try:
            async with session.post(self._method_url(method), json=payload) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise self._api_error(method, resp.status, body)
                try:
                    return await resp.json(content_type=None)
                except ValueError as exc:
                    raise MalformedResponseError(
                        f"{method} reply is not valid JSON",
                        method=method,
                        status_code=resp.status,
                    ) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            error = self._redact(str(exc))
            logger.debug("bot_api.request_failed", method=method, error=error)
            raise TransportError(
                f"{method} request failed: {type(exc).__name__}",
                method=method,
                details={"error": error},
            ) from exc

    def _api_error(self, method: str, status: int, body: str) -> BotApiError:
        error_code: int | None = None
        description: str | None = None
        retry_after: int | None = None
        try:
            data = json.loads(body)
        except ValueError:
            data = None
        if isinstance(data, dict):
            if isinstance(data.get("error_code"), int):
                error_code = data["error_code"]
            if isinstance(data.get("description"), str):
                description = self._redact(data["description"])
            parameters = data.get("parameters")
            if isinstance(parameters, dict) and isinstance(parameters.get("retry_after"), int):
                retry_after = parameters["retry_after"]
        elif body:
            description = self._redact(body[:200])

        logger.debug(
            "bot_api.error_reply",
            method=method,
            status=status,
            description=description,
        )
        message = f"{method} failed with HTTP {status}"
        if description:
            message = f"{message}: {description}"
        error_cls = PollingConflictError if status == CONFLICT_STATUS else BotApiError
        return error_cls(
            message,
            status_code=status,
            method=method,
            error_code=error_code,
            description=description,
            retry_after=retry_after,
        )
