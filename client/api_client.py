"""
EuroDeals API 的 HTTP client

包一層 httpx：自動帶 X-Player-Id、回傳解析後的 JSON，
錯誤回應轉成帶有 server kind 與 message 的 ApiError
"""
import logging
from typing import Any, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, kind: str, message: str, status: int):
        self.kind = kind
        self.message = message
        self.status = status
        super().__init__(f"{status} {kind}: {message}")


class LobbyApiClient:
    """綁定單一玩家身分的 async API client"""

    def __init__(self, base_url: str, player_id: Optional[str] = None, transport: httpx.AsyncBaseTransport = None, timeout: float = 10.0):
        self.player_id = player_id
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.player_id:
            headers["X-Player-Id"] = self.player_id
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise ApiError("UNAVAILABLE", str(e), 0) from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise ApiError("INTERNAL", "Response body is not JSON", response.status_code) from e

        try:
            error = response.json().get("error", {})
        except ValueError:
            error = {}
        raise ApiError(
            error.get("kind", "INTERNAL"),
            error.get("message", response.text or "An error occurred"),
            response.status_code,
        )

    # ============ 玩家 ============

    async def register(self, name: str) -> dict:
        data = await self._request("POST", "/api/players", json={"name": name})
        self.player_id = data["id"]
        return data

    async def me(self) -> dict:
        return await self._request("GET", "/api/players/me")

    async def heartbeat(self) -> dict:
        return await self._request("POST", "/api/heartbeat")

    # ============ 房間 ============

    async def create_lobby(self, name: str) -> dict:
        return await self._request("POST", "/api/lobbies", json={"name": name})

    async def get_lobby(self, lobby_id: str) -> dict:
        return await self._request("GET", f"/api/lobbies/{lobby_id}")

    async def join_lobby(self, lobby_ref: str) -> dict:
        return await self._request("POST", f"/api/lobbies/{lobby_ref}/join")

    async def leave_lobby(self, lobby_id: str) -> dict:
        return await self._request("POST", f"/api/lobbies/{lobby_id}/leave")

    async def dissolve_lobby(self, lobby_id: str) -> dict:
        return await self._request("DELETE", f"/api/lobbies/{lobby_id}")

    # ============ 交易 ============

    async def create_deal(
        self,
        lobby_id: str,
        receiver_id: str,
        proposer_actions: List[dict],
        receiver_actions: List[dict],
        notes: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> dict:
        return await self._request("POST", "/api/deals", json={
            "lobby_id": lobby_id,
            "receiver_id": receiver_id,
            "proposer_actions": proposer_actions,
            "receiver_actions": receiver_actions,
            "notes": notes,
            "summary": summary,
        })

    async def list_deals(self, lobby_id: Optional[str] = None, status: Optional[str] = None) -> List[dict]:
        params = {}
        if lobby_id:
            params["lobby_id"] = lobby_id
        if status:
            params["status"] = status
        return await self._request("GET", "/api/deals", params=params)

    async def transition_deal(self, deal_id: int, action: str) -> dict:
        """action：accept | reject | cancel | complete"""
        return await self._request("PUT", f"/api/deals/{deal_id}/{action}")
