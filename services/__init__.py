"""
Service 層

只做純計算與唯讀的資料轉換，不負責狀態轉換：
- NamingService：房間代碼
- PresenceService：判斷玩家是否離開
- SummaryService：交易摘要文字
- ViewService：房間與交易的回傳格式
"""
