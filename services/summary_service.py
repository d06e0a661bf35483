"""
摘要服務：把交易動作轉成可讀的文字

proposer 沒有填摘要時，用來自動產生交易摘要
"""
from typing import Iterable


def describe_action(action: dict) -> str:
    """
    一個動作對應一句描述

    範例：
        Deliver 3 coal to Basel and leave them there
        Pay 5 million upfront
        Allow track usage 2 times for a fee of 1 million each time
    """
    kind = action.get("type")

    if kind == "deliver-goods":
        goods = action.get("goods_type")
        if goods == "other":
            goods = action.get("custom_goods") or "goods"
        text = f"Deliver {action.get('quantity')} {goods} to {action.get('destination') or 'the destination'}"
        if action.get("condition") == "leave":
            return text + " and leave them there"
        return text + " for pickup"

    if kind == "payment":
        text = f"Pay {action.get('amount')} million"
        condition = action.get("condition")
        if condition == "upfront":
            return text + " upfront"
        if condition == "on-completion":
            return text + " on completion"
        if condition == "on-pickup":
            return text + " on pickup"
        return text

    if kind == "track-usage":
        text = f"Allow track usage {action.get('times')} times"
        if action.get("usage_type") == "free":
            return text + " for free"
        return text + f" for a fee of {action.get('fee')} million each time"

    if kind == "custom-action":
        return action.get("text") or "Custom action"

    return str(kind)


def build_deal_summary(
    proposer_name: str,
    proposer_actions: Iterable[dict],
    receiver_name: str,
    receiver_actions: Iterable[dict],
) -> str:
    parts = []
    for name, actions in ((proposer_name, proposer_actions), (receiver_name, receiver_actions)):
        lines = [describe_action(a) for a in actions]
        if lines:
            parts.append(f"{name} will: " + "; ".join(lines) + ".")
    return " ".join(parts)
