"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

支援的資料庫使用 SELECT ... FOR UPDATE 實現悲觀鎖（Pessimistic Locking）。
SQLite 會忽略 FOR UPDATE，這時靠 DealStateMachine 的條件式 UPDATE 防止重複轉換
"""
from sqlalchemy.orm import Session, Query

from models import Deal, Lobby


def with_lobby_lock(lobby_id: str, db: Session) -> Query:
    """
    鎖定一個 Lobby（行級鎖）

    使用場景：
    - 解散房間（成員與 pending 交易要一起變更）
    - 加入房間或建立交易，避免過程中房間被解散

    範例：
        lobby = with_lobby_lock(lobby_id, db).first()
        if not lobby or not lobby.is_active:
            raise LobbyNotFound(lobby_id)

    注意：
        - nowait=False 表示如果鎖被佔用，會等待而不是直接失敗
        - 必須在 transaction 內使用（見 @transactional）
    """
    return db.query(Lobby).filter(
        Lobby.id == lobby_id
    ).with_for_update(nowait=False).populate_existing()


def with_deal_lock(deal_id: int, db: Session) -> Query:
    """
    鎖定一個 Deal（行級鎖）

    返回 Query，需要呼叫 .first() 取得交易
    """
    return db.query(Deal).filter(
        Deal.id == deal_id
    ).with_for_update(nowait=False).populate_existing()
