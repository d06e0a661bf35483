from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
import logging

from core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./eurodeals.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # 房間代碼：排除 0/O、1/I 這類容易看錯的字元，方便口頭報代碼
    lobby_code_length: int = 6
    lobby_code_alphabet: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    lobby_code_max_attempts: int = 20

    # 玩家超過這個秒數沒有任何請求，就顯示為「離開」
    away_threshold_seconds: int = 120

    # 前端重新同步的間隔（秒）
    poll_interval_seconds: float = 5.0

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite 需要特殊設定：connect_args={"check_same_thread": False}
# 同步 endpoint 在 FastAPI 的 thread pool 執行，會跨執行緒使用連線
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def some_business_logic(db: Session, ...):
            lobby = Lobby(...)
            db.add(lobby)
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback
        - 資料庫錯誤轉成 StoreUnavailable 拋出
        - 其他異常原樣重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except SQLAlchemyError as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise StoreUnavailable(str(e)) from e
        except Exception:
            db.rollback()
            raise

    return wrapper
