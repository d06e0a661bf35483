"""
WebSocket endpoint：房間訂閱

ENDPOINT:
    WS /ws

Client 控制訊息：
    {"event": "joinLobby",  "data": {"lobby_id": "..."}}
    {"event": "leaveLobby", "data": {"lobby_id": "..."}}
    {"event": "ping"}

Server 事件（只送給訂閱該房間的 socket）：
    playerJoined   {"player": {...}}
    newDeal        {deal}
    dealUpdated    {deal}
    lobbyDissolved {"lobby_id": "..."}

推播只是加速：前端仍然會輪詢，漏掉的事件會在下次重新同步時補上
"""
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({
        "event": "error",
        "data": {"kind": "INVALID_ARGUMENT", "message": message}
    })


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    流程：
    1. 接受連線
    2. 持續處理控制訊息，訂閱或取消訂閱房間
    3. 斷線時移除這個 socket 的所有訂閱

    注意：
        - 不是 JSON 或格式不對的訊息只回 error 事件，連線不中斷
    """
    notifier = websocket.app.state.notifier
    await websocket.accept()
    logger.info("WebSocket connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                await _send_error(websocket, "Message must be JSON with an 'event' field")
                continue

            if not isinstance(data, dict) or "event" not in data:
                await _send_error(websocket, "Message must be JSON with an 'event' field")
                continue

            event = data.get("event")
            payload = data.get("data") or {}

            if event == "ping":
                await websocket.send_json({"event": "pong", "data": {}})
                continue

            if event not in ("joinLobby", "leaveLobby"):
                await _send_error(websocket, f"Unknown event: {event}")
                continue

            lobby_id = payload.get("lobby_id") if isinstance(payload, dict) else None
            if not lobby_id:
                await _send_error(websocket, f"{event} requires data.lobby_id")
                continue

            if event == "joinLobby":
                notifier.subscribe(lobby_id, websocket)
                await websocket.send_json({"event": "subscribed", "data": {"lobby_id": lobby_id}})
            else:
                notifier.unsubscribe(lobby_id, websocket)
                await websocket.send_json({"event": "unsubscribed", "data": {"lobby_id": lobby_id}})

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
    finally:
        notifier.disconnect(websocket)
