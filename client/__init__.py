"""
前端輔助工具：API client，以及結合輪詢與推播的房間快取
"""
