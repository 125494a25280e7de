"""LinkedIn Posts API adapter: single posts up to 3000 characters."""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from typing import Any, Mapping

from postguard.content.types import Platform
from postguard.errors import PlatformHTTPError
from postguard.publish.adapter import PlatformAdapter
from postguard.publish.result import ErrorKind
from postguard.publish.retry import send_with_retry
from postguard.publish.transport.base import TransportResponse

LINKEDIN_API_BASE_URL = "https://api.linkedin.com"
LINKEDIN_API_VERSION = "202511"
MAX_POST_LENGTH = 3000
PERSON_URN_PREFIX = "urn:li:person:"
PERSON_ID_CACHE_SIZE = 1024


class LinkedInAdapter(PlatformAdapter):
    """Publishes as the authenticated member.

    The member's person id comes from ``/v2/userinfo`` and travels to
    :meth:`build_payload` in the publish context, never on the adapter.
    Lookups are cached per token digest, least recently used first out.
    """

    platform = Platform.LINKEDIN
    base_url = LINKEDIN_API_BASE_URL
    character_budget = MAX_POST_LENGTH
    supports_threading = False
    max_segments = 1
    reset_headers = ("retry-after",)

    def __init__(
        self, *args: Any, person_id_cache_size: int = PERSON_ID_CACHE_SIZE, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self._person_ids: OrderedDict[str, str] = OrderedDict()
        self._person_id_cache_size = person_id_cache_size

    @property
    def publish_path(self) -> str:
        return "/rest/posts"

    def build_headers(self, token: str) -> dict[str, str]:
        headers = super().build_headers(token)
        headers["LinkedIn-Version"] = LINKEDIN_API_VERSION
        headers["X-Restli-Protocol-Version"] = "2.0.0"
        return headers

    async def prepare(self, token: str) -> dict[str, Any]:
        return {"person_id": await self.person_id(token)}

    async def person_id(self, token: str) -> str:
        """Person id for *token*, from the cache or ``/v2/userinfo``."""
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        cached = self._person_ids.get(cache_key)
        if cached is not None:
            self._person_ids.move_to_end(cache_key)
            return cached
        person_id = await self.fetch_person_id(token)
        self._person_ids[cache_key] = person_id
        while len(self._person_ids) > self._person_id_cache_size:
            self._person_ids.popitem(last=False)
        return person_id

    async def fetch_person_id(self, token: str) -> str:
        url = f"{self.base_url}/v2/userinfo"
        headers = {"Authorization": f"Bearer {token}"}
        response = await send_with_retry(
            lambda: self._transport.send(url, "GET", headers),
            describe_error=self.describe_error,
            reset_headers=self.reset_headers,
            policy=self._retry_policy,
            sleep=self._sleep,
            label="linkedin userinfo",
        )
        body = response.json_body if isinstance(response.json_body, dict) else {}
        subject = body.get("sub")
        if not subject:
            raise PlatformHTTPError(
                response.status,
                ErrorKind.UNKNOWN_ERROR.value,
                "userinfo response did not include a subject",
            )
        return str(subject).removeprefix(PERSON_URN_PREFIX)

    def build_payload(
        self, text: str, reply_to: str | None, context: Mapping[str, Any]
    ) -> dict[str, Any]:
        return {
            "author": f"{PERSON_URN_PREFIX}{context['person_id']}",
            "commentary": {"text": text},
            "visibility": "PUBLIC",
            "distribution": {
                "feedDistribution": "MAIN_FEED",
                "targetEntities": [],
                "thirdPartyDistributionChannels": [],
            },
            "lifecycleState": "PUBLISHED",
        }

    def extract_id(self, response: TransportResponse) -> str | None:
        post_id = response.header("x-restli-id")
        if post_id:
            return post_id
        body = response.json_body
        if isinstance(body, dict) and body.get("id"):
            return str(body["id"])
        return None

    def describe_error(self, response: TransportResponse) -> str:
        body = response.json_body
        if isinstance(body, dict):
            message = body.get("message") or body.get("error_description")
            if message:
                return str(message)
        return f"HTTP {response.status}"
