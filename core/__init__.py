"""
核心業務邏輯

這個 package 包含房間與交易的規則：
- State Machine：所有交易狀態變更都必須經過它
- Managers：房間、交易、玩家的生命週期
- Locks：並發控制工具
- Connection Manager：以房間為範圍的 WebSocket 推播
"""
