from __future__ import annotations

import json
import logging
from typing import Any

import requests

from ..core.domain.exceptions import RateLimitedError, SheriffError
from ..core.domain.models import ChatChannel, ChatMessage

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"
CHANNEL_TYPES = "public_channel,private_channel"
CHANNEL_PAGE_LIMIT = 1000


def parse_retry_after(value: str | None) -> float:
    """Seconds from a Retry-After header; 0 when absent or not a number."""
    try:
        seconds = float(value or 0)
    except ValueError:
        return 0.0
    return seconds if seconds > 0 else 0.0


class SlackApiError(SheriffError):
    def __init__(self, method: str, error: str) -> None:
        self.method = method
        self.error = error
        super().__init__(f"slack {method} failed: {error}")


class SlackClient:
    """Thin Slack Web API client.

    Rate limiting surfaces as RateLimitedError carrying the Retry-After
    wait; retrying is the caller's job.
    """

    def __init__(
        self,
        *,
        token: str,
        timeout: float = 30.0,
        base_url: str = SLACK_API_URL,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {token}"})

    def _call(self, method: str, *, params: dict[str, Any] | None = None, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self._base_url}/{method}"
        if payload is None:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        else:
            resp = self._session.post(
                url,
                data=json.dumps(payload),
                headers={"Content-Type": "application/json; charset=utf-8"},
                timeout=self._timeout,
            )

        if resp.status_code == 429:
            retry_after = parse_retry_after(resp.headers.get("Retry-After"))
            raise RateLimitedError(retry_after, f"slack {method} rate limited, retry after {retry_after}s")
        resp.raise_for_status()

        body = resp.json()
        if not body.get("ok"):
            raise SlackApiError(method, body.get("error", "unknown_error"))
        return body

    def post_message(self, channel_id: str, message: ChatMessage, thread_ref: str | None = None) -> str:
        payload: dict[str, Any] = {"channel": channel_id, "text": message.text}
        if message.blocks:
            payload["blocks"] = list(message.blocks)
        if thread_ref:
            payload["thread_ts"] = thread_ref

        body = self._call("chat.postMessage", payload=payload)
        logger.info("Posted slack message", extra={"channel": channel_id, "thread_ts": thread_ref})
        return body.get("ts", "")

    def list_channels(self, cursor: str | None = None) -> tuple[list[ChatChannel], str | None]:
        params: dict[str, Any] = {
            "types": CHANNEL_TYPES,
            "exclude_archived": "true",
            "limit": CHANNEL_PAGE_LIMIT,
        }
        if cursor:
            params["cursor"] = cursor

        body = self._call("conversations.list", params=params)
        channels = [ChatChannel(id=c["id"], name=c.get("name", "")) for c in body.get("channels") or []]
        next_cursor = (body.get("response_metadata") or {}).get("next_cursor") or None
        logger.debug("Listed slack channels", extra={"count": len(channels), "next_cursor": next_cursor})
        return channels, next_cursor
