"""
在線狀態服務：由最後活動時間判斷玩家是否「離開」

只用於顯示，房間與交易規則都不依賴它
"""
from datetime import datetime, timedelta
from typing import Optional

from database import get_settings
from models import utcnow


def is_away(last_active: datetime, now: Optional[datetime] = None, threshold_seconds: Optional[int] = None) -> bool:
    """
    玩家閒置超過門檻時回傳 True

    參數：
        last_active: 最後一次請求的時間（不帶時區的 UTC）
        now: 現在時間，預設 utcnow()
        threshold_seconds: 預設 settings.away_threshold_seconds（120）
    """
    if last_active is None:
        return True
    now = now or utcnow()
    if threshold_seconds is None:
        threshold_seconds = get_settings().away_threshold_seconds
    return now - last_active > timedelta(seconds=threshold_seconds)
