import os

# 讓 module 層級的 engine 不要用到硬碟上的預設資料庫
os.environ.setdefault("DATABASE_URL", "sqlite://")
