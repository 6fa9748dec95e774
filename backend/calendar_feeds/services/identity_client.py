# calendar_feeds/services/identity_client.py
import logging
from typing import Optional

import httpx

logger = logging.getLogger("ila.identity")


class IdentityClient:
    """
    Verifies bearer access tokens against the identity provider.

    One instance (and its underlying httpx.AsyncClient) lives for the whole
    process: it is created on application startup, stored on ``app.state``
    and closed on shutdown. Handlers receive it through a dependency.
    """

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 10.0, transport=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def get_user_id(self, access_token: str) -> Optional[str]:
        """
        - GET {base}/auth/v1/user with the caller's token
        - returns the user's id, or None when the provider rejects the token
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            resp = await self._client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.warning("auth verification request failed: %s", e)
            return None

        if resp.status_code != 200:
            logger.warning("auth verification failed: status %s", resp.status_code)
            return None

        try:
            user_id = resp.json().get("id")
        except ValueError:
            logger.warning("auth verification returned a non-JSON body")
            return None

        return str(user_id) if user_id else None

    async def aclose(self) -> None:
        await self._client.aclose()
