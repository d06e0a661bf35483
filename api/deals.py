"""
Deal API Endpoints

職責：
1. 提出交易
2. 列出／查詢呼叫者的交易
3. 接受／拒絕／取消／完成

規則都在 DealManager；這裡只負責取得呼叫者、呼叫 manager，
並在寫入 commit 之後排程推播
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from models import DealStatus, Player
from schemas import DealCreate, DealResponse, DealTransitionResponse
from core.connection_manager import ConnectionManager
from core.deal_manager import DealManager
from services.view_service import deal_view
from api.deps import get_current_player, get_notifier

router = APIRouter(prefix="/api/deals", tags=["deals"])
logger = logging.getLogger(__name__)


@router.post("", response_model=DealResponse, status_code=status.HTTP_201_CREATED)
def create_deal(
    deal_data: DealCreate,
    background_tasks: BackgroundTasks,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db),
    notifier: ConnectionManager = Depends(get_notifier)
):
    """
    向房間內的其他成員提出交易

    呼叫者就是 proposer

    返回：
        201: 交易與其動作
        400: 缺少欄位、沒有動作、跟自己交易
        403: 有一方不在房間內
        404: 房間不存在或已解散
    """
    deal = DealManager.create_deal(
        db,
        lobby_id=deal_data.lobby_id,
        proposer_id=player.id,
        receiver_id=deal_data.receiver_id,
        proposer_actions=deal_data.proposer_actions,
        receiver_actions=deal_data.receiver_actions,
        notes=deal_data.notes,
        summary=deal_data.summary,
    )
    view = deal_view(deal)
    background_tasks.add_task(notifier.publish, deal.lobby_id, "newDeal", view)
    return view


@router.get("", response_model=List[DealResponse])
def list_deals(
    lobby_id: Optional[str] = Query(None),
    status: Optional[DealStatus] = Query(None),
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db)
):
    """呼叫者提出或收到的交易，新的在前"""
    return DealManager.list_deals(db, player.id, lobby_id=lobby_id, status=status)


@router.get("/{deal_id}", response_model=DealResponse)
def get_deal(
    deal_id: int,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db)
):
    deal = DealManager.get_deal_for_participant(db, deal_id, player.id)
    return deal_view(deal)


def _transition_response(deal, message: str, background_tasks: BackgroundTasks, notifier: ConnectionManager):
    view = deal_view(deal)
    background_tasks.add_task(notifier.publish, deal.lobby_id, "dealUpdated", view)
    return {"message": message, "deal": view}


@router.put("/{deal_id}/accept", response_model=DealTransitionResponse)
def accept_deal(
    deal_id: int,
    background_tasks: BackgroundTasks,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db),
    notifier: ConnectionManager = Depends(get_notifier)
):
    """pending -> accepted（只有 receiver）"""
    deal = DealManager.accept_deal(db, deal_id, player.id)
    return _transition_response(deal, "Deal accepted successfully", background_tasks, notifier)


@router.put("/{deal_id}/reject", response_model=DealTransitionResponse)
def reject_deal(
    deal_id: int,
    background_tasks: BackgroundTasks,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db),
    notifier: ConnectionManager = Depends(get_notifier)
):
    """pending -> rejected（只有 receiver）"""
    deal = DealManager.reject_deal(db, deal_id, player.id)
    return _transition_response(deal, "Deal rejected successfully", background_tasks, notifier)


@router.put("/{deal_id}/cancel", response_model=DealTransitionResponse)
def cancel_deal(
    deal_id: int,
    background_tasks: BackgroundTasks,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db),
    notifier: ConnectionManager = Depends(get_notifier)
):
    """pending -> cancelled（只有 proposer）"""
    deal = DealManager.cancel_deal(db, deal_id, player.id)
    return _transition_response(deal, "Deal cancelled successfully", background_tasks, notifier)


@router.put("/{deal_id}/complete", response_model=DealTransitionResponse)
def complete_deal(
    deal_id: int,
    background_tasks: BackgroundTasks,
    player: Player = Depends(get_current_player),
    db: Session = Depends(get_db),
    notifier: ConnectionManager = Depends(get_notifier)
):
    """accepted -> completed（任一方皆可）"""
    deal = DealManager.complete_deal(db, deal_id, player.id)
    return _transition_response(deal, "Deal marked as completed successfully", background_tasks, notifier)
