"""
Deal Manager：建立、查詢與轉換交易

職責：
1. 建立交易與其動作（同一個 transaction，全部成功或全部失敗）
2. 檢查誰可以做哪個轉換
3. 所有狀態變更交給 DealStateMachine
4. 查詢玩家參與的交易

權限：
- accept / reject：只有 receiver
- cancel：只有 proposer
- complete：proposer 或 receiver
"""
from sqlalchemy.orm import Session
from pydantic import TypeAdapter, ValidationError
from typing import Iterable, List, Optional
import logging

from models import ActionType, Deal, DealAction, DealStatus, Player
from schemas import DealActionPayload
from core.state_machine import DealStateMachine
from core.locks import with_deal_lock, with_lobby_lock
from core.exceptions import (
    DealNotFound,
    InvalidArgument,
    LobbyNotFound,
    NotDealParticipant,
    NotLobbyMember,
)
from core.lobby_manager import LobbyManager
from services.summary_service import build_deal_summary
from services.view_service import list_player_deals
from database import transactional

logger = logging.getLogger(__name__)

_action_adapter = TypeAdapter(DealActionPayload)


def _normalize_actions(actions: Optional[Iterable], side: str) -> List[dict]:
    """用 tagged union 驗證動作內容，回傳一般 dict"""
    normalized = []
    for index, action in enumerate(actions or []):
        if hasattr(action, "model_dump"):
            action = action.model_dump(exclude_none=True)
        try:
            model = _action_adapter.validate_python(action)
        except ValidationError as e:
            raise InvalidArgument(f"Invalid {side} action #{index + 1}: {e.errors()[0]['msg']}") from e
        normalized.append(model.model_dump(exclude_none=True))
    return normalized


class DealManager:
    """交易生命週期管理器"""

    @staticmethod
    @transactional
    def create_deal(
        db: Session,
        lobby_id: str,
        proposer_id: str,
        receiver_id: str,
        proposer_actions: Optional[Iterable] = None,
        receiver_actions: Optional[Iterable] = None,
        notes: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> Deal:
        """
        提出交易

        前置條件（寫入任何資料前全部檢查完）：
        1. proposer 與 receiver 不同人
        2. 至少一方有動作，且每個動作都合法
        3. 房間存在且仍然活躍
        4. 兩位玩家都是房間的有效成員

        流程：
        1. 驗證輸入
        2. 鎖定房間並檢查成員資格
        3. 寫入 Deal（pending）與 DealAction
        4. 沒有摘要時自動產生

        返回：
            新的 Deal

        拋出：
            InvalidArgument: 跟自己交易、沒有動作，或動作內容不合法
            LobbyNotFound: 房間不存在或已解散
            NotLobbyMember: 有一方不是房間的有效成員
        """
        # 1. 驗證輸入
        if not lobby_id or not receiver_id:
            raise InvalidArgument("Lobby ID and receiver ID are required")
        if proposer_id == receiver_id:
            raise InvalidArgument("Cannot propose a deal to yourself")

        proposer_payloads = _normalize_actions(proposer_actions, "proposer")
        receiver_payloads = _normalize_actions(receiver_actions, "receiver")
        if not proposer_payloads and not receiver_payloads:
            raise InvalidArgument("A deal needs at least one action")

        # 2. 房間與成員資格
        lobby = with_lobby_lock(lobby_id, db).first()
        if not lobby or not lobby.is_active:
            raise LobbyNotFound(lobby_id)

        for player_id in (proposer_id, receiver_id):
            if not LobbyManager.is_active_member(db, lobby_id, player_id):
                raise NotLobbyMember(lobby_id, player_id)

        # 3. 交易與動作
        summary = (summary or "").strip() or None
        if summary is None:
            names = dict(
                db.query(Player.id, Player.name).filter(
                    Player.id.in_([proposer_id, receiver_id])
                ).all()
            )
            summary = build_deal_summary(
                names.get(proposer_id, "Proposer"), proposer_payloads,
                names.get(receiver_id, "Receiver"), receiver_payloads,
            )

        deal = Deal(
            lobby_id=lobby_id,
            proposer_id=proposer_id,
            receiver_id=receiver_id,
            notes=notes,
            summary=summary,
            status=DealStatus.PENDING,
        )
        db.add(deal)
        db.flush()  # 需要 deal.id

        for player_id, payloads in ((proposer_id, proposer_payloads), (receiver_id, receiver_payloads)):
            for payload in payloads:
                db.add(DealAction(
                    deal_id=deal.id,
                    player_id=player_id,
                    action_type=ActionType(payload["type"]),
                    action_data=payload,
                ))

        db.flush()
        db.refresh(deal)

        logger.info(
            f"Deal {deal.id} proposed in lobby {lobby_id}: {proposer_id} -> {receiver_id} "
            f"({len(proposer_payloads)}+{len(receiver_payloads)} actions)"
        )
        return deal

    @staticmethod
    def get_deal(db: Session, deal_id: int) -> Deal:
        deal = db.query(Deal).filter(Deal.id == deal_id).first()
        if not deal:
            raise DealNotFound(deal_id)
        return deal

    @staticmethod
    def get_deal_for_participant(db: Session, deal_id: int, player_id: str) -> Deal:
        """
        拋出：
            DealNotFound: 交易不存在
            NotDealParticipant: 玩家不是 proposer 也不是 receiver
        """
        deal = DealManager.get_deal(db, deal_id)
        if player_id not in (deal.proposer_id, deal.receiver_id):
            raise NotDealParticipant("You are not part of this deal")
        return deal

    @staticmethod
    def list_deals(
        db: Session,
        player_id: str,
        lobby_id: Optional[str] = None,
        status: Optional[DealStatus] = None,
    ) -> List[dict]:
        return list_player_deals(player_id, db, lobby_id=lobby_id, status=status)

    # ============ 狀態轉換 ============

    @staticmethod
    @transactional
    def accept_deal(db: Session, deal_id: int, actor_id: str) -> Deal:
        """pending -> accepted（只有 receiver）"""
        deal = DealManager._load_for_update(db, deal_id)
        if deal.receiver_id != actor_id:
            raise NotDealParticipant("Only the receiver can accept the deal")
        return DealStateMachine.transition(deal_id, DealStatus.ACCEPTED, db)

    @staticmethod
    @transactional
    def reject_deal(db: Session, deal_id: int, actor_id: str) -> Deal:
        """pending -> rejected（只有 receiver）"""
        deal = DealManager._load_for_update(db, deal_id)
        if deal.receiver_id != actor_id:
            raise NotDealParticipant("Only the receiver can reject the deal")
        return DealStateMachine.transition(deal_id, DealStatus.REJECTED, db)

    @staticmethod
    @transactional
    def cancel_deal(db: Session, deal_id: int, actor_id: str) -> Deal:
        """pending -> cancelled（只有 proposer）"""
        deal = DealManager._load_for_update(db, deal_id)
        if deal.proposer_id != actor_id:
            raise NotDealParticipant("Only the proposer can cancel the deal")
        return DealStateMachine.transition(deal_id, DealStatus.CANCELLED, db)

    @staticmethod
    @transactional
    def complete_deal(db: Session, deal_id: int, actor_id: str) -> Deal:
        """accepted -> completed（任一方皆可）"""
        deal = DealManager._load_for_update(db, deal_id)
        if actor_id not in (deal.proposer_id, deal.receiver_id):
            raise NotDealParticipant("You are not part of this deal")
        return DealStateMachine.transition(deal_id, DealStatus.COMPLETED, db)

    @staticmethod
    def _load_for_update(db: Session, deal_id: int) -> Deal:
        deal = with_deal_lock(deal_id, db).first()
        if not deal:
            raise DealNotFound(deal_id)
        return deal
