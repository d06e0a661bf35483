"""
命名服務：生成房間代碼

純計算邏輯，不涉及狀態轉換
"""
import random

from database import get_settings


def generate_lobby_code(length: int = None, alphabet: str = None) -> str:
    """
    生成隨機的房間代碼

    範例：K7QXNP, 4MHT2A

    預設字元集排除容易看錯的字元（0/O、1/I），方便口頭報代碼或照著螢幕輸入

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 32^6 約 10.7 億種可能，碰撞機率極低
    """
    settings = get_settings()
    length = length or settings.lobby_code_length
    alphabet = alphabet or settings.lobby_code_alphabet
    return ''.join(random.choices(alphabet, k=length))


def looks_like_lobby_code(value: str) -> bool:
    """
    `value` 看起來像房間代碼（而不是房間 id）時回傳 True

    加入房間時兩種都接受，用這個判斷要先查哪一種
    """
    settings = get_settings()
    candidate = value.strip().upper()
    return (
        len(candidate) == settings.lobby_code_length
        and all(ch in settings.lobby_code_alphabet for ch in candidate)
    )
