"""
ORM 模型

資料表：players、lobbies、lobby_players、deals、deal_actions
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    """不帶時區的 UTC 時間（SQLite 讀回來時會丟掉 tzinfo）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class DealStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ActionType(str, enum.Enum):
    DELIVER_GOODS = "deliver-goods"
    PAYMENT = "payment"
    TRACK_USAGE = "track-usage"
    CUSTOM_ACTION = "custom-action"


class Player(Base):
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    last_active = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    memberships = relationship("LobbyPlayer", back_populates="player")


class Lobby(Base):
    __tablename__ = "lobbies"
    __table_args__ = (
        # 只限制活躍房間的代碼唯一，解散後代碼可以重複使用
        Index(
            "uq_lobby_active_code",
            "code",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    code = Column(String(12), nullable=False, index=True)
    host_id = Column(String(36), ForeignKey("players.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    host = relationship("Player")
    memberships = relationship(
        "LobbyPlayer",
        back_populates="lobby",
        order_by="LobbyPlayer.joined_at",
    )


class LobbyPlayer(Base):
    __tablename__ = "lobby_players"
    __table_args__ = (
        UniqueConstraint("lobby_id", "player_id", name="uq_lobby_player"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    lobby_id = Column(String(36), ForeignKey("lobbies.id"), nullable=False, index=True)
    player_id = Column(String(36), ForeignKey("players.id"), nullable=False, index=True)
    joined_at = Column(DateTime, nullable=False, default=utcnow)
    is_active = Column(Boolean, nullable=False, default=True)

    lobby = relationship("Lobby", back_populates="memberships")
    player = relationship("Player", back_populates="memberships")


class Deal(Base):
    __tablename__ = "deals"

    # 整數 id 同時代表寫入順序，created_at 相同時用來排序
    id = Column(Integer, primary_key=True, autoincrement=True)
    lobby_id = Column(String(36), ForeignKey("lobbies.id"), nullable=False, index=True)
    proposer_id = Column(String(36), ForeignKey("players.id"), nullable=False, index=True)
    receiver_id = Column(String(36), ForeignKey("players.id"), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    status = Column(
        Enum(DealStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        default=DealStatus.PENDING,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    proposer = relationship("Player", foreign_keys=[proposer_id])
    receiver = relationship("Player", foreign_keys=[receiver_id])
    actions = relationship("DealAction", back_populates="deal", order_by="DealAction.id")


class DealAction(Base):
    __tablename__ = "deal_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    deal_id = Column(Integer, ForeignKey("deals.id"), nullable=False, index=True)
    player_id = Column(String(36), ForeignKey("players.id"), nullable=False)
    action_type = Column(
        Enum(ActionType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    action_data = Column(JSON, nullable=False)

    deal = relationship("Deal", back_populates="actions")
