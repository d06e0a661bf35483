from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from core.connection_manager import ConnectionManager
from core.exceptions import PlayerNotFound, Unauthenticated
from core.player_manager import PlayerManager
from database import get_db
from models import Player


def get_current_player(
    x_player_id: str = Header(None, alias="X-Player-Id"),
    db: Session = Depends(get_db),
) -> Player:
    """
    從 X-Player-Id header 取得呼叫者

    同時更新 last_active，所以每個帶身分的請求都等於一次心跳
    """
    player_id = (x_player_id or "").strip()
    if not player_id:
        raise Unauthenticated("Authentication required")
    try:
        return PlayerManager.touch(db, player_id)
    except PlayerNotFound:
        raise Unauthenticated("Player not found")


def get_notifier(request: Request) -> ConnectionManager:
    return request.app.state.notifier
