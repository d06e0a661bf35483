import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
import models  # 註冊資料表到 Base
from core.lobby_manager import LobbyManager
from core.player_manager import PlayerManager


class DatabaseTestCase(unittest.TestCase):
    """每個測試使用全新的 in-memory SQLite"""

    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.db = self.SessionLocal()

    def tearDown(self) -> None:
        self.db.close()
        Base.metadata.drop_all(bind=self.engine)
        self.engine.dispose()

    def make_player(self, name: str):
        player, _ = PlayerManager.register(self.db, name)
        return player

    def make_lobby(self, host, name: str = "Alps Run"):
        return LobbyManager.create_lobby(self.db, host.id, name)
