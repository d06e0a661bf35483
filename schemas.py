"""
Request / Response 模型（Pydantic）
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import DealStatus


GoodsType = Literal[
    "bauxite", "beer", "cars", "cattle", "cheese", "china", "chocolate",
    "coal", "copper", "cork", "fish", "flowers", "ham", "hops", "imports",
    "iron", "labor", "machinery", "marble", "oil", "oranges", "potatoes",
    "sheep", "steel", "tobacco", "tourists", "wheat", "wine", "wood",
    "other",
]
GOODS_TYPES = get_args(GoodsType)


# ============ 交易動作（以 `type` 區分） ============

class DeliverGoodsAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["deliver-goods"] = "deliver-goods"
    goods_type: GoodsType
    custom_goods: Optional[str] = Field(None, max_length=50)
    quantity: int = Field(..., ge=1)
    destination: str = Field(..., min_length=1, max_length=100)
    condition: Literal["leave", "pickup"]

    @model_validator(mode="after")
    def _custom_goods_named(self):
        if self.goods_type == "other" and not (self.custom_goods or "").strip():
            raise ValueError("custom_goods is required when goods_type is 'other'")
        if self.goods_type != "other" and self.custom_goods is not None:
            raise ValueError("custom_goods is only allowed when goods_type is 'other'")
        return self


class PaymentAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["payment"] = "payment"
    amount: int = Field(..., gt=0)
    condition: Literal["upfront", "on-completion", "on-pickup"]


class TrackUsageAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["track-usage"] = "track-usage"
    usage_type: Literal["free", "fee"]
    times: int = Field(..., ge=1)
    fee: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def _fee_matches_usage(self):
        if self.usage_type == "fee" and self.fee is None:
            raise ValueError("fee is required when usage_type is 'fee'")
        if self.usage_type == "free" and self.fee is not None:
            raise ValueError("fee must be omitted when usage_type is 'free'")
        return self


class CustomAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["custom-action"] = "custom-action"
    text: str = Field(..., min_length=1, max_length=500)


# 依 `type` 欄位分派到對應的動作模型
DealActionPayload = Annotated[
    Union[DeliverGoodsAction, PaymentAction, TrackUsageAction, CustomAction],
    Field(discriminator="type"),
]


# ============ 玩家 ============

class PlayerRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class PlayerRegisterResponse(BaseModel):
    id: str
    name: str
    is_new_player: bool


class PlayerSummary(BaseModel):
    id: str
    name: str


class LobbySummary(BaseModel):
    id: str
    name: str
    code: str
    host_id: str
    joined_at: datetime


class PlayerMeResponse(BaseModel):
    player: PlayerSummary
    active_lobbies: List[LobbySummary]


class MessageResponse(BaseModel):
    message: str


# ============ 房間 ============

class LobbyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class LobbyMember(BaseModel):
    id: str
    name: str
    joined_at: datetime
    last_active: datetime
    is_host: bool
    is_away: bool


class LobbyResponse(BaseModel):
    id: str
    name: str
    code: str
    host_id: str
    is_active: bool
    created_at: datetime
    players: List[LobbyMember]


# ============ 交易 ============

class DealCreate(BaseModel):
    lobby_id: str = Field(..., min_length=1)
    receiver_id: str = Field(..., min_length=1)
    proposer_actions: List[DealActionPayload] = Field(default_factory=list)
    receiver_actions: List[DealActionPayload] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)
    summary: Optional[str] = Field(None, max_length=2000)


class DealActionResponse(BaseModel):
    id: int
    player_id: str
    action_type: str
    action_data: dict


class DealResponse(BaseModel):
    id: int
    lobby_id: str
    proposer_id: str
    proposer_name: str
    receiver_id: str
    receiver_name: str
    notes: Optional[str]
    summary: Optional[str]
    status: DealStatus
    created_at: datetime
    updated_at: datetime
    actions: List[DealActionResponse]


class DealTransitionResponse(BaseModel):
    message: str
    deal: DealResponse
