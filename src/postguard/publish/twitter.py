"""Twitter (X) API v2 adapter: 280-character posts, threaded by reply chain."""

from __future__ import annotations

from typing import Any, Mapping

from postguard.content.types import Platform
from postguard.publish.adapter import PlatformAdapter
from postguard.publish.transport.base import TransportResponse

TWITTER_API_BASE_URL = "https://api.twitter.com"
MAX_TWEET_LENGTH = 280
MAX_THREAD_LENGTH = 25


class TwitterAdapter(PlatformAdapter):
    platform = Platform.TWITTER
    base_url = TWITTER_API_BASE_URL
    character_budget = MAX_TWEET_LENGTH
    supports_threading = True
    max_segments = MAX_THREAD_LENGTH
    inter_segment_delay = 0.5
    reset_headers = ("x-rate-limit-reset",)

    @property
    def publish_path(self) -> str:
        return "/2/tweets"

    def build_payload(
        self, text: str, reply_to: str | None, context: Mapping[str, Any]
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": text}
        if reply_to:
            payload["reply"] = {"in_reply_to_tweet_id": reply_to}
        return payload

    def extract_id(self, response: TransportResponse) -> str | None:
        body = response.json_body
        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            return None
        tweet_id = body["data"].get("id")
        return str(tweet_id) if tweet_id else None

    def describe_error(self, response: TransportResponse) -> str:
        body = response.json_body
        if isinstance(body, dict):
            errors = body.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                message = errors[0].get("message")
                if message:
                    return str(message)
            if body.get("detail"):
                return str(body["detail"])
        return f"HTTP {response.status}"

    def reset_at_ms(self, retry_after: str | None) -> int | None:
        # x-rate-limit-reset is epoch seconds.
        if retry_after and retry_after.strip().isdigit():
            return int(retry_after.strip()) * 1000
        return None
