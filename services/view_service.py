"""
檢視服務：給 API 與推播使用的唯讀資料轉換

把 Player / Lobby / LobbyPlayer / Deal / DealAction 組成一般 dict，
讓前端直接拿到玩家名稱與動作內容。不做快取，每次都讀最新 commit 的狀態
"""
from typing import List, Dict, Any, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from models import Deal, DealStatus, Lobby, LobbyPlayer, Player
from services.presence_service import is_away


def lobby_members(lobby: Lobby, db: Session) -> List[Dict[str, Any]]:
    """有效成員，依加入時間排序，並標示 Host"""
    rows = (
        db.query(LobbyPlayer, Player)
        .join(Player, LobbyPlayer.player_id == Player.id)
        .filter(LobbyPlayer.lobby_id == lobby.id, LobbyPlayer.is_active == True)
        .order_by(LobbyPlayer.joined_at, LobbyPlayer.id)
        .all()
    )
    return [member_view(player, membership, lobby) for membership, player in rows]


def lobby_view(lobby: Lobby, db: Session) -> Dict[str, Any]:
    return {
        "id": lobby.id,
        "name": lobby.name,
        "code": lobby.code,
        "host_id": lobby.host_id,
        "is_active": lobby.is_active,
        "created_at": lobby.created_at,
        "players": lobby_members(lobby, db),
    }


def member_view(player: Player, membership: LobbyPlayer, lobby: Lobby) -> Dict[str, Any]:
    """單一成員資料（playerJoined 事件也使用這個格式）"""
    return {
        "id": player.id,
        "name": player.name,
        "joined_at": membership.joined_at,
        "last_active": player.last_active,
        "is_host": player.id == lobby.host_id,
        "is_away": is_away(player.last_active),
    }


def deal_view(deal: Deal) -> Dict[str, Any]:
    return {
        "id": deal.id,
        "lobby_id": deal.lobby_id,
        "proposer_id": deal.proposer_id,
        "proposer_name": deal.proposer.name if deal.proposer else None,
        "receiver_id": deal.receiver_id,
        "receiver_name": deal.receiver.name if deal.receiver else None,
        "notes": deal.notes,
        "summary": deal.summary,
        "status": deal.status,
        "created_at": deal.created_at,
        "updated_at": deal.updated_at,
        "actions": [
            {
                "id": action.id,
                "player_id": action.player_id,
                "action_type": action.action_type.value,
                "action_data": action.action_data,
            }
            for action in deal.actions
        ],
    }


def list_player_deals(
    player_id: str,
    db: Session,
    lobby_id: Optional[str] = None,
    status: Optional[DealStatus] = None,
) -> List[Dict[str, Any]]:
    """
    玩家參與的交易，新的在前

    created_at 相同時用 id（寫入順序）排序，一樣新的在前
    """
    query = (
        db.query(Deal)
        .options(
            joinedload(Deal.proposer),
            joinedload(Deal.receiver),
            selectinload(Deal.actions),
        )
        .filter((Deal.proposer_id == player_id) | (Deal.receiver_id == player_id))
    )
    if lobby_id:
        query = query.filter(Deal.lobby_id == lobby_id)
    if status:
        query = query.filter(Deal.status == status)

    deals = query.order_by(Deal.created_at.desc(), Deal.id.desc()).all()
    return [deal_view(deal) for deal in deals]
