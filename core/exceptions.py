"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

每個異常都帶有穩定的 `kind`（給程式判斷）以及對應的 HTTP status
"""


class LobbyDealsError(Exception):
    """所有房間／交易異常的基類"""
    kind = "INTERNAL"
    status = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ============ 分類 ============

class InvalidArgument(LobbyDealsError):
    """輸入格式錯誤或缺少欄位，呼叫端需修正後重送"""
    kind = "INVALID_ARGUMENT"
    status = 400


class NotFound(LobbyDealsError):
    """房間／交易／玩家不存在或已停用"""
    kind = "NOT_FOUND"
    status = 404


class Forbidden(LobbyDealsError):
    """身分已確認，但沒有權限對該物件做這個操作"""
    kind = "FORBIDDEN"
    status = 403


class Conflict(LobbyDealsError):
    """物件目前的狀態不允許這個請求（可能被其他請求改掉）"""
    kind = "CONFLICT"
    status = 400


class Unavailable(LobbyDealsError):
    """資料庫或通知通道暫時無法使用，可以稍後重試"""
    kind = "UNAVAILABLE"
    status = 503


class Unauthenticated(LobbyDealsError):
    """請求沒有可用的玩家身分"""
    kind = "UNAUTHENTICATED"
    status = 401


# ============ Player 相關異常 ============

class PlayerNotFound(NotFound):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


# ============ Lobby 相關異常 ============

class LobbyNotFound(NotFound):
    """房間不存在或已解散"""
    def __init__(self, lobby_ref):
        self.lobby_ref = lobby_ref
        super().__init__(f"Lobby {lobby_ref} not found or inactive")


class NotLobbyMember(Forbidden):
    def __init__(self, lobby_id, player_id):
        self.lobby_id = lobby_id
        self.player_id = player_id
        super().__init__(f"Player {player_id} is not an active member of lobby {lobby_id}")


class NotLobbyHost(Forbidden):
    def __init__(self, lobby_id, player_id):
        self.lobby_id = lobby_id
        self.player_id = player_id
        super().__init__("Only the host can dissolve the lobby")


class HostCannotLeave(Forbidden):
    def __init__(self, lobby_id):
        self.lobby_id = lobby_id
        super().__init__("Host cannot leave the lobby. Use the dissolve option instead.")


class LobbyCodeTaken(Conflict):
    """代碼在寫入時已被另一個同時建立的房間佔用"""
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Lobby code {code} is already in use")


class LobbyCodeExhausted(Unavailable):
    """重試次數用完仍找不到可用的房間代碼"""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique lobby code after {attempts} attempts")


# ============ Deal 相關異常 ============

class DealNotFound(NotFound):
    def __init__(self, deal_id):
        self.deal_id = deal_id
        super().__init__(f"Deal {deal_id} not found")


class NotDealParticipant(Forbidden):
    pass


class InvalidDealTransition(Conflict):
    """交易目前的狀態不是這個轉換的起點"""
    def __init__(self, deal_id, current, target):
        self.deal_id = deal_id
        self.current = current
        self.target = target
        super().__init__(
            f"Deal {deal_id} cannot move from {getattr(current, 'value', current)} "
            f"to {getattr(target, 'value', target)}"
        )


# ============ 資料庫 ============

class StoreUnavailable(Unavailable):
    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__("Storage is temporarily unavailable")
