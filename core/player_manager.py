"""
Player Manager：玩家註冊、查詢與心跳

玩家在第一次註冊時建立，之後不會刪除。
帶著已知 id 重新註冊只會更新顯示名稱
"""
from sqlalchemy.orm import Session
from typing import Optional, Tuple
import logging

from models import Lobby, LobbyPlayer, Player, utcnow
from core.exceptions import InvalidArgument, PlayerNotFound
from database import transactional

logger = logging.getLogger(__name__)


class PlayerManager:
    """玩家生命週期管理器"""

    @staticmethod
    @transactional
    def register(db: Session, name: str, player_id: Optional[str] = None) -> Tuple[Player, bool]:
        """
        註冊新玩家，或幫已知玩家改名

        參數：
            db: SQLAlchemy Session
            name: 顯示名稱
            player_id: 前端已經持有的身分（沒有就是 None）

        返回：
            (Player, is_new_player)

        拋出：
            InvalidArgument: 名稱空白
        """
        name = (name or "").strip()
        if not name:
            raise InvalidArgument("Player name is required")

        if player_id:
            player = db.query(Player).filter(Player.id == player_id).first()
            if player:
                if player.name != name:
                    logger.info(f"Player {player.id} renamed {player.name!r} -> {name!r}")
                    player.name = name
                player.last_active = utcnow()
                return player, False

        player = Player(name=name)
        db.add(player)
        db.flush()
        logger.info(f"Registered player {player.id} ({name})")
        return player, True

    @staticmethod
    def get_player(db: Session, player_id: str) -> Player:
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise PlayerNotFound(player_id)
        return player

    @staticmethod
    @transactional
    def touch(db: Session, player_id: str) -> Player:
        """
        更新 last_active（心跳）

        每個帶身分的請求都會呼叫
        """
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise PlayerNotFound(player_id)
        player.last_active = utcnow()
        return player

    @staticmethod
    def active_lobbies(db: Session, player_id: str) -> list:
        """玩家目前所在的活躍房間（含加入時間）"""
        rows = (
            db.query(Lobby, LobbyPlayer.joined_at)
            .join(LobbyPlayer, LobbyPlayer.lobby_id == Lobby.id)
            .filter(
                LobbyPlayer.player_id == player_id,
                LobbyPlayer.is_active == True,
                Lobby.is_active == True
            )
            .order_by(LobbyPlayer.joined_at)
            .all()
        )
        return [
            {
                "id": lobby.id,
                "name": lobby.name,
                "code": lobby.code,
                "host_id": lobby.host_id,
                "joined_at": joined_at,
            }
            for lobby, joined_at in rows
        ]
