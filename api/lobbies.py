"""
Lobby API Endpoints

職責：
1. 建立房間（呼叫者成為 Host）
2. 用 id 或代碼查詢房間
3. 加入／離開
4. 解散（只有 Host）
"""
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
import logging

from database import get_db
from models import Player
from schemas import LobbyCreate, LobbyResponse, MessageResponse
from core.connection_manager import ConnectionManager
from core.deal_manager import DealManager
from core.lobby_manager import LobbyManager
from services.view_service import deal_view, lobby_view, member_view
from api.deps import get_current_player, get_notifier

router = APIRouter(prefix="/api/lobbies", tags=["lobbies"])
logger = logging.getLogger(__name__)


@router.post("", response_model=LobbyResponse, status_code=status.HTTP_201_CREATED)
def create_lobby(
    lobby_data: LobbyCreate,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db)
):
    """
    建立房間

    流程：
    1. 分配活躍房間之間唯一的代碼
    2. 以呼叫者為 Host 建立房間
    3. 回傳房間與成員列表（只有 Host）
    """
    lobby = LobbyManager.create_lobby(db, player.id, lobby_data.name)
    return lobby_view(lobby, db)


@router.get("/code/{code}", response_model=LobbyResponse)
def get_lobby_by_code(
    code: str,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db)
):
    lobby = LobbyManager.get_lobby_by_code(db, code)
    return lobby_view(lobby, db)


@router.get("/{lobby_id}", response_model=LobbyResponse)
def get_lobby(
    lobby_id: str,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db)
):
    """
    房間目前的狀態（前端輪詢這個來重新同步）

    房間解散後回傳 404
    """
    lobby = LobbyManager.get_active_lobby(db, lobby_id)
    return lobby_view(lobby, db)


@router.post("/{lobby_ref}/join", response_model=LobbyResponse)
def join_lobby(
    lobby_ref: str,
    background_tasks: BackgroundTasks,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db),
    notifier: ConnectionManager = Depends(get_notifier)
):
    """
    用 id 或代碼加入房間

    重複加入沒有副作用：成員資格只會被重新啟用，不會重複建立
    會對房間推播 playerJoined
    """
    lobby, membership, joined = LobbyManager.join_lobby(db, lobby_ref, player.id)
    background_tasks.add_task(
        notifier.publish, lobby.id, "playerJoined", {"player": member_view(joined, membership, lobby)}
    )
    return lobby_view(lobby, db)


@router.post("/{lobby_id}/leave", response_model=MessageResponse)
def leave_lobby(
    lobby_id: str,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db)
):
    """離開房間；Host 會得到 403，只能解散房間"""
    LobbyManager.leave_lobby(db, lobby_id, player.id)
    return MessageResponse(message="Successfully left the lobby")


@router.delete("/{lobby_id}", response_model=MessageResponse)
def dissolve_lobby(
    lobby_id: str,
    background_tasks: BackgroundTasks,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db),
    notifier: ConnectionManager = Depends(get_notifier)
):
    """
    解散房間（只有 Host）

    停用所有成員資格並取消 pending 交易
    訂閱者會先收到每筆被取消交易的 dealUpdated，最後收到 lobbyDissolved
    """
    lobby, cancelled_ids = LobbyManager.dissolve_lobby(db, lobby_id, player.id)

    for deal_id in cancelled_ids:
        deal = DealManager.get_deal(db, deal_id)
        background_tasks.add_task(notifier.publish, lobby.id, "dealUpdated", deal_view(deal))
    background_tasks.add_task(notifier.publish, lobby.id, "lobbyDissolved", {"lobby_id": lobby.id})

    return MessageResponse(message="Lobby dissolved successfully")
