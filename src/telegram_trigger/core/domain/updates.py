"""Bot API update model: cursor, request/response envelopes and the type filter.

Updates are kept as the plain JSON objects the Bot API returns. The trigger
never interprets a payload beyond the presence of its top-level keys, which
name the update type (an update carrying a ``message`` key is a message
update, one carrying ``callback_query`` is a callback query, and so on).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from telegram_trigger.core.domain.errors import MalformedResponseError

RawUpdate = dict[str, Any]

WILDCARD = "*"
UPDATE_ID_KEY = "update_id"

# Source: https://core.telegram.org/bots/api#update
UPDATE_TYPES: tuple[str, ...] = (
    "message",
    "edited_message",
    "channel_post",
    "edited_channel_post",
    "business_connection",
    "business_message",
    "edited_business_message",
    "deleted_business_messages",
    "message_reaction",
    "message_reaction_count",
    "inline_query",
    "chosen_inline_result",
    "callback_query",
    "shipping_query",
    "pre_checkout_query",
    "purchased_paid_media",
    "poll",
    "poll_answer",
    "my_chat_member",
    "chat_member",
    "chat_join_request",
    "chat_boost",
    "removed_chat_boost",
)


@dataclass
class PollCursor:
    """Watermark of the next unconsumed update id.

    A negative ``next_offset`` is a valid seed: the Bot API then returns
    updates counted from the end of its queue.
    """

    next_offset: int = 0

    def advance_past(self, last_update_id: int) -> None:
        """Move the cursor just past ``last_update_id``.

        The Bot API returns updates in ascending id order, so the new value
        is written as-is without comparing it to the previous one.
        """
        self.next_offset = last_update_id + 1


@dataclass(frozen=True)
class GetUpdatesRequest:
    """Arguments of a single ``getUpdates`` call."""

    offset: int
    limit: int
    timeout: int
    allowed_updates: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body sent to ``getUpdates``."""
        return {
            "offset": self.offset,
            "limit": self.limit,
            "timeout": self.timeout,
            "allowed_updates": list(self.allowed_updates),
        }


@dataclass(frozen=True)
class PollResponse:
    """Envelope of a ``getUpdates`` reply.

    Attributes:
        ok: The ``ok`` flag of the reply.
        result: The update list, or None when the reply carried none.
    """

    ok: bool
    result: list[RawUpdate] | None = field(default=None)

    @classmethod
    def from_payload(cls, data: Any) -> PollResponse:
        """Parse a decoded JSON reply.

        Raises:
            MalformedResponseError: If the body is not an object, or its
                ``result`` is present but not a list of objects.
        """
        if not isinstance(data, dict):
            raise MalformedResponseError(
                "getUpdates reply is not a JSON object",
                method="getUpdates",
                details={"type": type(data).__name__},
            )

        result = data.get("result")
        if result is not None:
            if not isinstance(result, list) or not all(
                isinstance(item, dict) for item in result
            ):
                raise MalformedResponseError(
                    "getUpdates result is not a list of updates",
                    method="getUpdates",
                )

        return cls(ok=data.get("ok") is True, result=result)

    @property
    def last_update_id(self) -> int | None:
        """Id of the last update in ``result``, or None if there is none."""
        if not self.result:
            return None
        last = self.result[-1]
        update_id = last.get(UPDATE_ID_KEY)
        if not isinstance(update_id, int) or isinstance(update_id, bool):
            raise MalformedResponseError(
                "getUpdates result ends with an update without an integer update_id",
                method="getUpdates",
                details={"keys": sorted(last)},
            )
        return update_id


def resolve_allowed_types(selection: Iterable[str]) -> frozenset[str]:
    """Map an update-type selection to the set used for filtering.

    The wildcard anywhere in the selection means "all types", which is
    represented by the empty set.
    """
    types = frozenset(selection)
    if WILDCARD in types:
        return frozenset()
    return types


def filter_updates(
    updates: Sequence[RawUpdate], allowed_types: frozenset[str] | set[str]
) -> list[RawUpdate]:
    """Keep the updates whose top-level keys name an allowed type.

    An empty ``allowed_types`` keeps every update. Order is preserved.
    """
    if not allowed_types:
        return list(updates)
    return [update for update in updates if not allowed_types.isdisjoint(update)]


def update_types_of(update: RawUpdate) -> list[str]:
    """List the known update types present on ``update``."""
    return [key for key in update if key in UPDATE_TYPES]
