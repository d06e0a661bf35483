"""
WebSocket 連線管理：以房間為範圍推播

socket 訂閱房間，broadcast() 把事件送給訂閱同一房間的所有 socket。
推播是盡力而為：送不出去的 socket 直接移除；publish() 不會把錯誤丟回
呼叫端，因為觸發它的資料庫寫入已經 commit

資料結構：
    {
        "lobby_id_1": {WebSocket, WebSocket},
        "lobby_id_2": {WebSocket},
    }

訊息格式：
    {"event": "dealUpdated", "data": {...}}
"""
import logging
from typing import Dict, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ConnectionManager:
    """房間訂閱登記表"""

    def __init__(self):
        self.subscriptions: Dict[str, Set[WebSocket]] = {}

    def subscribe(self, lobby_id: str, websocket: WebSocket) -> None:
        self.subscriptions.setdefault(lobby_id, set()).add(websocket)
        logger.info(f"Socket subscribed to lobby {lobby_id} ({len(self.subscriptions[lobby_id])} total)")

    def unsubscribe(self, lobby_id: str, websocket: WebSocket) -> None:
        sockets = self.subscriptions.get(lobby_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.subscriptions[lobby_id]
        logger.info(f"Socket unsubscribed from lobby {lobby_id}")

    def disconnect(self, websocket: WebSocket) -> None:
        """把 socket 從所有訂閱的房間移除"""
        for lobby_id in list(self.subscriptions):
            self.unsubscribe(lobby_id, websocket)

    def subscriber_count(self, lobby_id: str) -> int:
        return len(self.subscriptions.get(lobby_id, ()))

    async def broadcast(self, lobby_id: str, event: str, data) -> int:
        """
        把一個事件送給訂閱該房間的所有 socket

        返回：
            成功送達的 socket 數量
        """
        sockets = list(self.subscriptions.get(lobby_id, ()))
        if not sockets:
            logger.debug(f"No subscribers for lobby {lobby_id}, skipping {event}")
            return 0

        message = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        dead = []
        for websocket in sockets:
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send {event} to a socket in lobby {lobby_id}: {e}")
                dead.append(websocket)

        for websocket in dead:
            self.disconnect(websocket)
        return delivered

    async def publish(self, lobby_id: str, event: str, data) -> None:
        """broadcast() 的包裝：出錯只記 log，不拋出"""
        try:
            delivered = await self.broadcast(lobby_id, event, data)
            logger.debug(f"Published {event} to {delivered} socket(s) in lobby {lobby_id}")
        except Exception as e:
            logger.error(f"Notification {event} for lobby {lobby_id} failed: {e}", exc_info=True)
