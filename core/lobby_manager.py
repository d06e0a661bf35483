"""
Lobby Manager：管理 Lobby 的完整生命週期

職責：
1. 建立房間（Host 自動成為第一位成員）
2. 加入／重新加入（用 id 或房間代碼）
3. 離開（Host 以外的成員）
4. 解散（只有 Host 可以）
5. 查詢房間資訊

規則：
- 房間存活期間，Host 的成員資格一直有效
- 房間代碼只在「活躍」房間之間唯一，解散後可以重複使用
- 成員資料列不會重複，離開只是停用
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Tuple
import logging

from models import Deal, DealStatus, Lobby, LobbyPlayer, Player, utcnow
from core.locks import with_lobby_lock
from core.exceptions import (
    HostCannotLeave,
    InvalidArgument,
    LobbyCodeExhausted,
    LobbyCodeTaken,
    LobbyNotFound,
    NotLobbyHost,
    PlayerNotFound,
)
from services.naming_service import generate_lobby_code, looks_like_lobby_code
from database import get_settings, transactional

logger = logging.getLogger(__name__)


class LobbyManager:
    """Lobby 生命週期管理器"""

    @staticmethod
    def allocate_code(db: Session) -> str:
        """
        重複產生房間代碼，直到沒有活躍房間使用為止

        拋出：
            LobbyCodeExhausted: 超過 lobby_code_max_attempts 次仍然碰撞
        """
        attempts = get_settings().lobby_code_max_attempts
        for _ in range(attempts):
            code = generate_lobby_code()
            taken = db.query(Lobby.id).filter(
                Lobby.code == code,
                Lobby.is_active == True
            ).first()
            if not taken:
                return code
            logger.warning(f"Lobby code collision detected, regenerating: {code}")
        raise LobbyCodeExhausted(attempts)

    @staticmethod
    def create_lobby(db: Session, host_id: str, name: str) -> Lobby:
        """
        建立新房間（含 Host 成員）

        流程：
        1. 在一個 transaction 內分配代碼並寫入房間（_insert_lobby）
        2. 如果寫入時代碼被同時建立的房間搶走，整個 transaction
           rollback 後重來

        參數：
            db: SQLAlchemy Session
            host_id: 建立房間的玩家
            name: 房間名稱

        返回：
            新的 Lobby

        拋出：
            InvalidArgument: 名稱空白
            PlayerNotFound: Host 不存在
            LobbyCodeExhausted: 找不到可用的代碼
        """
        attempts = get_settings().lobby_code_max_attempts
        for _ in range(attempts):
            try:
                return LobbyManager._insert_lobby(db, host_id, name)
            except LobbyCodeTaken as e:
                logger.warning(f"Lobby code {e.code} taken by a concurrent create, retrying")
        raise LobbyCodeExhausted(attempts)

    @staticmethod
    @transactional
    def _insert_lobby(db: Session, host_id: str, name: str) -> Lobby:
        """
        流程：
        1. 檢查名稱與 Host
        2. 分配活躍房間之間唯一的代碼
        3. 建立 Lobby
        4. 把 Host 加為成員

        注意：
            - 查詢與寫入之間的空窗由 uq_lobby_active_code 索引把關，
              碰撞時拋出 LobbyCodeTaken（decorator 會 rollback）
        """
        name = (name or "").strip()
        if not name:
            raise InvalidArgument("Lobby name is required")

        if not db.query(Player.id).filter(Player.id == host_id).first():
            raise PlayerNotFound(host_id)

        # 1. 分配房間代碼
        code = LobbyManager.allocate_code(db)

        # 2. 建立 Lobby
        lobby = Lobby(name=name, code=code, host_id=host_id, is_active=True)
        db.add(lobby)
        try:
            db.flush()  # 需要 lobby.id
        except IntegrityError as e:
            raise LobbyCodeTaken(code) from e

        # 3. Host 成員資格
        db.add(LobbyPlayer(lobby_id=lobby.id, player_id=host_id, is_active=True))

        logger.info(f"Created lobby {lobby.id} ({name!r}) with code {code}, host {host_id}")
        return lobby

    @staticmethod
    def get_active_lobby(db: Session, lobby_id: str) -> Lobby:
        """
        拋出：
            LobbyNotFound: 不存在或已解散
        """
        lobby = db.query(Lobby).filter(
            Lobby.id == lobby_id,
            Lobby.is_active == True
        ).first()
        if not lobby:
            raise LobbyNotFound(lobby_id)
        return lobby

    @staticmethod
    def get_lobby_by_code(db: Session, code: str) -> Lobby:
        """
        用代碼找活躍房間（不分大小寫）

        拋出：
            LobbyNotFound: 沒有活躍房間使用這個代碼
        """
        lobby = db.query(Lobby).filter(
            Lobby.code == code.strip().upper(),
            Lobby.is_active == True
        ).first()
        if not lobby:
            raise LobbyNotFound(f"with code {code}")
        return lobby

    @staticmethod
    def resolve_lobby(db: Session, lobby_ref: str) -> Lobby:
        """用代碼或 id 找活躍房間"""
        if looks_like_lobby_code(lobby_ref):
            lobby = db.query(Lobby).filter(
                Lobby.code == lobby_ref.strip().upper(),
                Lobby.is_active == True
            ).first()
            if lobby:
                return lobby
        return LobbyManager.get_active_lobby(db, lobby_ref)

    @staticmethod
    @transactional
    def join_lobby(db: Session, lobby_ref: str, player_id: str) -> Tuple[Lobby, LobbyPlayer, Player]:
        """
        加入（或重新加入）房間

        沒有資料列就新增，有就重新啟用，所以重複加入永遠只會留下一筆
        有效的成員資格

        參數：
            db: SQLAlchemy Session
            lobby_ref: 房間 id 或代碼
            player_id: 加入的玩家

        返回：
            (Lobby, LobbyPlayer, Player)

        拋出：
            LobbyNotFound: 不存在或已解散
            PlayerNotFound: 玩家不存在
        """
        lobby = LobbyManager.resolve_lobby(db, lobby_ref)
        lobby = with_lobby_lock(lobby.id, db).first()
        if not lobby or not lobby.is_active:
            raise LobbyNotFound(lobby_ref)

        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise PlayerNotFound(player_id)

        # 房間行鎖讓同時加入依序執行；不支援 FOR UPDATE 的資料庫由 uq_lobby_player 把關
        membership = LobbyManager._find_membership(db, lobby.id, player_id)
        if membership is None:
            membership = LobbyPlayer(lobby_id=lobby.id, player_id=player_id, is_active=True)
            db.add(membership)
        else:
            membership.is_active = True

        db.flush()
        logger.info(f"Player {player_id} joined lobby {lobby.id} ({lobby.code})")
        return lobby, membership, player

    @staticmethod
    @transactional
    def leave_lobby(db: Session, lobby_id: str, player_id: str) -> None:
        """
        離開房間（Host 以外的成員）

        拋出：
            LobbyNotFound: 不存在或已解散
            HostCannotLeave: Host 只能解散房間
        """
        lobby = LobbyManager.get_active_lobby(db, lobby_id)
        if lobby.host_id == player_id:
            raise HostCannotLeave(lobby_id)

        db.query(LobbyPlayer).filter(
            LobbyPlayer.lobby_id == lobby_id,
            LobbyPlayer.player_id == player_id
        ).update({LobbyPlayer.is_active: False}, synchronize_session=False)

        logger.info(f"Player {player_id} left lobby {lobby_id}")

    @staticmethod
    @transactional
    def dissolve_lobby(db: Session, lobby_id: str, actor_id: str) -> Tuple[Lobby, List[int]]:
        """
        解散房間（只有 Host 可以）

        流程：
        1. 鎖定房間，確認操作者是 Host
        2. 停用房間與所有成員資格
        3. 取消房間內所有 pending 交易；已接受或已結束的交易維持原狀態

        返回：
            (Lobby, 因解散而被取消的交易 id)

        拋出：
            LobbyNotFound: 不存在或已解散
            NotLobbyHost: 操作者不是 Host
        """
        lobby = with_lobby_lock(lobby_id, db).first()
        if not lobby or not lobby.is_active:
            raise LobbyNotFound(lobby_id)
        if lobby.host_id != actor_id:
            raise NotLobbyHost(lobby_id, actor_id)

        lobby.is_active = False
        db.query(LobbyPlayer).filter(
            LobbyPlayer.lobby_id == lobby_id
        ).update({LobbyPlayer.is_active: False}, synchronize_session=False)

        pending_ids = [
            deal_id for (deal_id,) in db.query(Deal.id).filter(
                Deal.lobby_id == lobby_id,
                Deal.status == DealStatus.PENDING
            ).all()
        ]
        if pending_ids:
            db.query(Deal).filter(
                Deal.id.in_(pending_ids),
                Deal.status == DealStatus.PENDING
            ).update(
                {Deal.status: DealStatus.CANCELLED, Deal.updated_at: utcnow()},
                synchronize_session=False
            )

        db.flush()
        logger.info(
            f"Lobby {lobby_id} dissolved by host {actor_id}; "
            f"cancelled {len(pending_ids)} pending deal(s)"
        )
        return lobby, pending_ids

    @staticmethod
    def is_active_member(db: Session, lobby_id: str, player_id: str) -> bool:
        return db.query(LobbyPlayer.id).filter(
            LobbyPlayer.lobby_id == lobby_id,
            LobbyPlayer.player_id == player_id,
            LobbyPlayer.is_active == True
        ).first() is not None

    @staticmethod
    def _find_membership(db: Session, lobby_id: str, player_id: str):
        return db.query(LobbyPlayer).filter(
            LobbyPlayer.lobby_id == lobby_id,
            LobbyPlayer.player_id == player_id
        ).first()
