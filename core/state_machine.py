"""
Deal State Machine：交易狀態轉換

唯一知道哪個狀態可以接到哪個狀態的地方，也是交易建立後
唯一會寫入 Deal.status 的程式

    pending  -> accepted | rejected | cancelled
    accepted -> completed

rejected、cancelled、completed 為終止狀態
"""
from sqlalchemy.orm import Session
import logging

from models import Deal, DealStatus, utcnow
from core.exceptions import DealNotFound, InvalidDealTransition

logger = logging.getLogger(__name__)


class DealStateMachine:
    """交易狀態轉換（以 compare-and-swap 寫入）"""

    TRANSITIONS = {
        DealStatus.PENDING: {DealStatus.ACCEPTED, DealStatus.REJECTED, DealStatus.CANCELLED},
        DealStatus.ACCEPTED: {DealStatus.COMPLETED},
        DealStatus.REJECTED: set(),
        DealStatus.CANCELLED: set(),
        DealStatus.COMPLETED: set(),
    }

    @classmethod
    def can_transition(cls, current: DealStatus, target: DealStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, status: DealStatus) -> bool:
        return not cls.TRANSITIONS.get(status)

    @classmethod
    def transition(cls, deal_id: int, target: DealStatus, db: Session) -> Deal:
        """
        把交易轉換到 `target`

        流程：
        1. 讀取交易，檢查從目前狀態能否轉換
        2. UPDATE ... WHERE status = <目前狀態>；影響 0 筆代表
           中間已經被其他請求轉換過
        3. refresh 後回傳

        參數：
            deal_id: 交易 id
            target: 目標狀態
            db: SQLAlchemy Session（transaction 由呼叫端負責）

        拋出：
            DealNotFound: 交易不存在
            InvalidDealTransition: 不合法的轉換，或同時轉換時輸了
        """
        deal = db.query(Deal).filter(Deal.id == deal_id).first()
        if not deal:
            raise DealNotFound(deal_id)

        current = deal.status
        if not cls.can_transition(current, target):
            raise InvalidDealTransition(deal_id, current, target)

        updated = db.query(Deal).filter(
            Deal.id == deal_id,
            Deal.status == current
        ).update(
            {Deal.status: target, Deal.updated_at: utcnow()},
            synchronize_session=False
        )
        if updated != 1:
            db.expire(deal)
            latest = db.query(Deal.status).filter(Deal.id == deal_id).scalar()
            logger.warning(
                f"Deal {deal_id} changed concurrently: expected {current.value}, "
                f"found {getattr(latest, 'value', latest)}"
            )
            raise InvalidDealTransition(deal_id, latest, target)

        db.refresh(deal)
        logger.info(f"Deal {deal_id}: {current.value} -> {target.value}")
        return deal
