"""
Player API Endpoints

職責：
1. 註冊（建立或改名）玩家
2. 回傳呼叫者與其所在的活躍房間
3. 心跳
"""
from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
import logging

from database import get_db
from models import Player
from schemas import MessageResponse, PlayerMeResponse, PlayerRegister, PlayerRegisterResponse
from core.player_manager import PlayerManager
from api.deps import get_current_player

router = APIRouter(prefix="/api", tags=["players"])
logger = logging.getLogger(__name__)


@router.post("/players", response_model=PlayerRegisterResponse)
def register_player(
    player_data: PlayerRegister,
    x_player_id: str = Header(None, alias="X-Player-Id"),
    db: Session = Depends(get_db)
):
    """
    註冊或重新登入

    請求帶著已知的 X-Player-Id 時沿用原玩家（名稱不同就改名），
    否則建立新玩家。之後前端都用回傳的 id 當作 X-Player-Id
    """
    player, is_new = PlayerManager.register(db, player_data.name, player_id=x_player_id)
    return PlayerRegisterResponse(id=player.id, name=player.name, is_new_player=is_new)


@router.get("/players/me", response_model=PlayerMeResponse)
def get_me(player: Player = Depends(get_current_player), db: Session = Depends(get_db)):
    """呼叫者與其所在的活躍房間"""
    return {
        "player": {"id": player.id, "name": player.name},
        "active_lobbies": PlayerManager.active_lobbies(db, player.id),
    }


@router.post("/heartbeat", response_model=MessageResponse)
def heartbeat(player: Player = Depends(get_current_player)):
    # get_current_player 已經更新過 last_active
    return MessageResponse(message="Heartbeat received")
