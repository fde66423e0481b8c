"""Async client for the QR Links API.

Configuration travels with each client instance; nothing is stored at module
level, so several clients (different servers, different users) can coexist::

    config = ClientConfig("http://localhost:8000")
    async with QrLinksClient(config) as anon:
        token = await anon.login("me@example.com", "secret1")
    async with QrLinksClient(config.with_token(token)) as api:
        link = await api.create_link("https://example.com/page")
"""
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger("qrlinks.client")


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    token: str | None = None
    timeout: float = 10.0

    def with_token(self, token: str | None) -> "ClientConfig":
        return dataclasses.replace(self, token=token)


class ApiError(Exception):
    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class QrLinksClient:
    def __init__(self, config: ClientConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        headers = {"Authorization": f"Bearer {config.token}"} if config.token else {}
        self._http = httpx.AsyncClient(
            base_url=config.base_url, headers=headers, timeout=config.timeout, transport=transport
        )

    async def __aenter__(self) -> "QrLinksClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._http.request(method, path, **kwargs)
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            detail = body.get("detail", body) if isinstance(body, dict) else body
            logger.warning("%s %s -> %s", method, path, response.status_code)
            raise ApiError(response.status_code, detail)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # --- auth / users ---
    async def login(self, email: str, password: str) -> str:
        data = await self._request("POST", "/api/auth", json={"email": email, "password": password})
        return data["access_token"]

    async def register(self, email: str, password: str) -> dict:
        return await self._request("POST", "/api/users", json={"email": email, "password": password})

    async def me(self) -> dict:
        return await self._request("GET", "/api/auth/me")

    async def get_user(self, user_id: int) -> dict:
        return await self._request("GET", f"/api/users/{user_id}")

    async def update_user(self, user_id: int, email: str | None = None, password: str | None = None) -> dict:
        body = {k: v for k, v in {"email": email, "password": password}.items() if v is not None}
        return await self._request("PUT", f"/api/users/{user_id}", json=body)

    async def delete_user(self, user_id: int) -> None:
        await self._request("DELETE", f"/api/users/{user_id}")

    # --- links ---
    async def list_links(self) -> list[dict]:
        return await self._request("GET", "/api/links")

    async def get_link(self, code: str) -> dict:
        return await self._request("GET", f"/api/links/{code}")

    async def create_link(self, original_url: str, expires_at: str | None = None) -> dict:
        return await self._request(
            "POST", "/api/links", json={"original_url": original_url, "expires_at": expires_at}
        )

    async def update_link(self, code: str, original_url: str, expires_at: str | None = None) -> dict:
        return await self._request(
            "PUT", f"/api/links/{code}", json={"original_url": original_url, "expires_at": expires_at}
        )

    async def delete_link(self, code: str) -> None:
        await self._request("DELETE", f"/api/links/{code}")

    async def resolve(self, code: str) -> str:
        """Destination of a short code, without following the redirect."""
        response = await self._http.get(f"/r/{code}", follow_redirects=False)
        if not response.is_redirect:
            raise ApiError(response.status_code, response.text)
        return response.headers["location"]
