"""
前端房間快取與定期重新同步

LobbySync 保存一份 LobbySnapshot（房間 + 玩家在房間內的交易），
有兩種更新方式：

- resync()：重新抓房間與交易，整份取代快取。以 server 為準，
  本地套用過的事件直接被覆蓋
- apply_event()：套用一個推播事件（playerJoined、newDeal、
  dealUpdated、lobbyDissolved）。具冪等性，重送或遲到的事件不會出錯

事件與 resync 之間沒有順序保證；順序錯亂造成的差異由下一次 resync 修正
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from client.api_client import ApiError, LobbyApiClient

logger = logging.getLogger(__name__)


@dataclass
class LobbySnapshot:
    lobby: Optional[dict] = None
    deals: Dict[int, dict] = field(default_factory=dict)
    dissolved: bool = False

    def deal_list(self) -> List[dict]:
        """交易列表，新的在前（先比 created_at，再比 id）"""
        return sorted(
            self.deals.values(),
            key=lambda d: (d.get("created_at") or "", d.get("id") or 0),
            reverse=True,
        )


class LobbySync:
    """單一房間的輪詢與推播整合"""

    def __init__(self, api: LobbyApiClient, lobby_id: str, interval: float = 5.0):
        self.api = api
        self.lobby_id = lobby_id
        self.interval = interval
        self.snapshot = LobbySnapshot()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def resync(self) -> LobbySnapshot:
        """
        用 server 目前的狀態取代快取

        房間回傳 404 代表已解散（或從未存在）

        拋出：
            ApiError: 404 以外的錯誤
        """
        try:
            lobby = await self.api.get_lobby(self.lobby_id)
        except ApiError as e:
            if e.status == 404:
                self.snapshot = LobbySnapshot(dissolved=True)
                return self.snapshot
            raise

        deals = await self.api.list_deals(lobby_id=self.lobby_id)
        self.snapshot = LobbySnapshot(lobby=lobby, deals={d["id"]: d for d in deals})
        return self.snapshot

    def apply_event(self, event: dict) -> None:
        name = event.get("event")
        data = event.get("data") or {}

        if name == "playerJoined":
            player = data.get("player") or {}
            if self.snapshot.lobby is None or not player.get("id"):
                return
            players = [p for p in self.snapshot.lobby.get("players", []) if p["id"] != player["id"]]
            players.append(player)
            self.snapshot.lobby["players"] = players

        elif name in ("newDeal", "dealUpdated"):
            if data.get("lobby_id") != self.lobby_id or "id" not in data:
                return
            me = self.api.player_id
            if me and me not in (data.get("proposer_id"), data.get("receiver_id")):
                return
            self.snapshot.deals[data["id"]] = data

        elif name == "lobbyDissolved":
            if data.get("lobby_id") == self.lobby_id:
                self.snapshot.dissolved = True
                if self.snapshot.lobby is not None:
                    self.snapshot.lobby["is_active"] = False

        else:
            logger.debug(f"Ignoring event {name}")

    async def _run(self) -> None:
        while True:
            try:
                snapshot = await self.resync()
                if snapshot.dissolved:
                    logger.info(f"Lobby {self.lobby_id} is gone, stopping resync")
                    return
            except (ApiError, KeyError, TypeError) as e:
                logger.warning(f"Resync of lobby {self.lobby_id} failed: {e}")
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        """啟動輪詢 task（已經在跑就不做事）"""
        if not self.running:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
