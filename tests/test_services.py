import unittest
from datetime import datetime, timedelta

from pydantic import TypeAdapter, ValidationError

from core.state_machine import DealStateMachine
from models import DealStatus
from schemas import DealActionPayload, DealCreate, TrackUsageAction
from services.naming_service import generate_lobby_code, looks_like_lobby_code
from services.presence_service import is_away
from services.summary_service import build_deal_summary, describe_action


class NamingServiceTests(unittest.TestCase):
    def test_code_uses_unambiguous_alphabet(self):
        for _ in range(50):
            code = generate_lobby_code()
            self.assertEqual(len(code), 6)
            for ch in "01OI":
                self.assertNotIn(ch, code)

    def test_looks_like_lobby_code(self):
        self.assertTrue(looks_like_lobby_code("K7QXNP"))
        self.assertTrue(looks_like_lobby_code("k7qxnp"))
        self.assertFalse(looks_like_lobby_code("K7QXN"))
        self.assertFalse(looks_like_lobby_code("K0QXNP"))
        self.assertFalse(looks_like_lobby_code("3f1c6f0e-8d6b-4a55-9a3e-2f1b6f0c1d2e"))


class PresenceServiceTests(unittest.TestCase):
    def test_away_after_threshold(self):
        now = datetime(2024, 5, 1, 12, 0, 0)
        self.assertFalse(is_away(now - timedelta(seconds=119), now=now, threshold_seconds=120))
        self.assertFalse(is_away(now - timedelta(seconds=120), now=now, threshold_seconds=120))
        self.assertTrue(is_away(now - timedelta(seconds=121), now=now, threshold_seconds=120))

    def test_default_threshold_is_two_minutes(self):
        now = datetime(2024, 5, 1, 12, 0, 0)
        self.assertTrue(is_away(now - timedelta(minutes=3), now=now))
        self.assertFalse(is_away(now - timedelta(minutes=1), now=now))


class SummaryServiceTests(unittest.TestCase):
    def test_describe_each_action_kind(self):
        self.assertEqual(
            describe_action({"type": "deliver-goods", "goods_type": "wine", "quantity": 2,
                             "destination": "Lyon", "condition": "pickup"}),
            "Deliver 2 wine to Lyon for pickup",
        )
        self.assertEqual(
            describe_action({"type": "deliver-goods", "goods_type": "other", "custom_goods": "pianos",
                             "quantity": 1, "destination": "Wien", "condition": "leave"}),
            "Deliver 1 pianos to Wien and leave them there",
        )
        self.assertEqual(
            describe_action({"type": "payment", "amount": 10, "condition": "on-completion"}),
            "Pay 10 million on completion",
        )
        self.assertEqual(
            describe_action({"type": "track-usage", "usage_type": "free", "times": 3}),
            "Allow track usage 3 times for free",
        )
        self.assertEqual(
            describe_action({"type": "track-usage", "usage_type": "fee", "times": 2, "fee": 1}),
            "Allow track usage 2 times for a fee of 1 million each time",
        )
        self.assertEqual(describe_action({"type": "custom-action", "text": "Share a ferry"}), "Share a ferry")

    def test_summary_skips_empty_side(self):
        summary = build_deal_summary(
            "Alice", [{"type": "payment", "amount": 5, "condition": "on-pickup"}], "Bob", []
        )
        self.assertEqual(summary, "Alice will: Pay 5 million on pickup.")


class DealActionSchemaTests(unittest.TestCase):
    def setUp(self) -> None:
        self.adapter = TypeAdapter(DealActionPayload)

    def test_discriminates_on_type(self):
        action = self.adapter.validate_python({"type": "track-usage", "usage_type": "fee", "times": 1, "fee": 3})
        self.assertIsInstance(action, TrackUsageAction)

    def test_fee_only_with_fee_usage(self):
        with self.assertRaises(ValidationError):
            self.adapter.validate_python({"type": "track-usage", "usage_type": "free", "times": 1, "fee": 3})
        with self.assertRaises(ValidationError):
            self.adapter.validate_python({"type": "track-usage", "usage_type": "fee", "times": 1})

    def test_other_goods_need_a_name(self):
        with self.assertRaises(ValidationError):
            self.adapter.validate_python({"type": "deliver-goods", "goods_type": "other", "quantity": 1,
                                          "destination": "Oslo", "condition": "leave"})
        with self.assertRaises(ValidationError):
            self.adapter.validate_python({"type": "deliver-goods", "goods_type": "unobtainium", "quantity": 1,
                                          "destination": "Oslo", "condition": "leave"})

    def test_rejects_fields_from_other_kinds(self):
        with self.assertRaises(ValidationError):
            self.adapter.validate_python({"type": "payment", "amount": 1, "condition": "upfront", "times": 2})

    def test_deal_create_requires_receiver(self):
        with self.assertRaises(ValidationError):
            DealCreate(lobby_id="abc", proposer_actions=[])


class DealStateMachineTableTests(unittest.TestCase):
    def test_allowed_transitions(self):
        allowed = {
            (current, target)
            for current in DealStatus
            for target in DealStatus
            if DealStateMachine.can_transition(current, target)
        }
        self.assertEqual(allowed, {
            (DealStatus.PENDING, DealStatus.ACCEPTED),
            (DealStatus.PENDING, DealStatus.REJECTED),
            (DealStatus.PENDING, DealStatus.CANCELLED),
            (DealStatus.ACCEPTED, DealStatus.COMPLETED),
        })

    def test_terminal_states(self):
        terminal = {s for s in DealStatus if DealStateMachine.is_terminal(s)}
        self.assertEqual(terminal, {DealStatus.REJECTED, DealStatus.CANCELLED, DealStatus.COMPLETED})


if __name__ == "__main__":
    unittest.main()
