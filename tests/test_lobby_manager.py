import unittest
from unittest import mock

from sqlalchemy.exc import IntegrityError

from core.exceptions import (
    HostCannotLeave,
    InvalidArgument,
    LobbyCodeExhausted,
    LobbyNotFound,
    NotLobbyHost,
)
from core.lobby_manager import LobbyManager
from database import get_settings
from models import Lobby, LobbyPlayer
from services.view_service import lobby_view
from tests.base import DatabaseTestCase


class LobbyManagerTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.make_player("Alice")
        self.bob = self.make_player("Bob")

    def test_create_lobby_adds_host_as_active_member(self):
        lobby = self.make_lobby(self.alice)

        self.assertTrue(lobby.is_active)
        self.assertEqual(lobby.host_id, self.alice.id)
        self.assertEqual(len(lobby.code), 6)
        alphabet = get_settings().lobby_code_alphabet
        self.assertTrue(all(ch in alphabet for ch in lobby.code))

        view = lobby_view(lobby, self.db)
        self.assertEqual([p["id"] for p in view["players"]], [self.alice.id])
        self.assertTrue(view["players"][0]["is_host"])

    def test_create_lobby_requires_name(self):
        with self.assertRaises(InvalidArgument):
            LobbyManager.create_lobby(self.db, self.alice.id, "   ")
        self.assertEqual(self.db.query(Lobby).count(), 0)

    def test_codes_unique_among_active_lobbies(self):
        codes = {self.make_lobby(self.alice, f"Lobby {i}").code for i in range(25)}
        self.assertEqual(len(codes), 25)

    def test_code_collision_retries_then_succeeds(self):
        first = self.make_lobby(self.alice)
        draws = iter([first.code, first.code, "ZZZZZZ"])
        with mock.patch("core.lobby_manager.generate_lobby_code", side_effect=lambda: next(draws)):
            second = self.make_lobby(self.bob, "Second")
        self.assertEqual(second.code, "ZZZZZZ")

    def test_code_allocation_is_bounded(self):
        first = self.make_lobby(self.alice)
        with mock.patch("core.lobby_manager.generate_lobby_code", return_value=first.code):
            with self.assertRaises(LobbyCodeExhausted) as ctx:
                self.make_lobby(self.bob, "Second")
        self.assertEqual(ctx.exception.kind, "UNAVAILABLE")
        self.assertEqual(self.db.query(Lobby).count(), 1)

    def test_code_of_dissolved_lobby_can_be_reused(self):
        first = self.make_lobby(self.alice)
        LobbyManager.dissolve_lobby(self.db, first.id, self.alice.id)
        with mock.patch("core.lobby_manager.generate_lobby_code", return_value=first.code):
            second = self.make_lobby(self.bob, "Second")
        self.assertEqual(second.code, first.code)

    def test_database_rejects_duplicate_active_code(self):
        first = self.make_lobby(self.alice)
        self.db.add(Lobby(name="Copy", code=first.code, host_id=self.bob.id, is_active=True))
        with self.assertRaises(IntegrityError):
            self.db.flush()
        self.db.rollback()

        self.db.add(Lobby(name="Old", code=first.code, host_id=self.bob.id, is_active=False))
        self.db.commit()
        self.assertEqual(self.db.query(Lobby).filter(Lobby.code == first.code).count(), 2)

    def test_code_taken_by_concurrent_create_is_retried(self):
        first = self.make_lobby(self.alice)
        # allocate_code 查詢時代碼還沒被用，但另一個建立請求已經先 commit
        with mock.patch.object(LobbyManager, "allocate_code", side_effect=[first.code, "ZZZZZZ"]):
            second = self.make_lobby(self.bob, "Second")

        self.assertEqual(second.code, "ZZZZZZ")
        self.assertEqual(self.db.query(Lobby).count(), 2)
        self.assertEqual(
            self.db.query(LobbyPlayer).filter(LobbyPlayer.player_id == self.bob.id).count(), 1
        )

    def test_concurrent_code_theft_is_bounded(self):
        first = self.make_lobby(self.alice)
        with mock.patch.object(LobbyManager, "allocate_code", return_value=first.code):
            with self.assertRaises(LobbyCodeExhausted):
                self.make_lobby(self.bob, "Second")
        self.assertEqual(self.db.query(Lobby).count(), 1)

    def test_join_by_code_adds_member(self):
        lobby = self.make_lobby(self.alice)
        joined, membership, player = LobbyManager.join_lobby(self.db, lobby.code.lower(), self.bob.id)

        self.assertEqual(joined.id, lobby.id)
        self.assertTrue(membership.is_active)
        members = lobby_view(lobby, self.db)["players"]
        self.assertEqual(len(members), 2)
        bob = next(p for p in members if p["id"] == self.bob.id)
        self.assertFalse(bob["is_host"])

    def test_join_twice_keeps_single_active_row(self):
        lobby = self.make_lobby(self.alice)
        LobbyManager.join_lobby(self.db, lobby.id, self.bob.id)
        LobbyManager.join_lobby(self.db, lobby.id, self.bob.id)

        rows = self.db.query(LobbyPlayer).filter(
            LobbyPlayer.lobby_id == lobby.id,
            LobbyPlayer.player_id == self.bob.id
        ).all()
        self.assertEqual(len(rows), 1)
        self.assertTrue(rows[0].is_active)

    def test_leave_then_rejoin_reactivates_row(self):
        lobby = self.make_lobby(self.alice)
        LobbyManager.join_lobby(self.db, lobby.id, self.bob.id)
        LobbyManager.leave_lobby(self.db, lobby.id, self.bob.id)
        self.assertFalse(LobbyManager.is_active_member(self.db, lobby.id, self.bob.id))

        LobbyManager.join_lobby(self.db, lobby.code, self.bob.id)
        self.assertTrue(LobbyManager.is_active_member(self.db, lobby.id, self.bob.id))
        self.assertEqual(
            self.db.query(LobbyPlayer).filter(LobbyPlayer.player_id == self.bob.id).count(), 1
        )

    def test_host_cannot_leave(self):
        lobby = self.make_lobby(self.alice)
        with self.assertRaises(HostCannotLeave) as ctx:
            LobbyManager.leave_lobby(self.db, lobby.id, self.alice.id)
        self.assertEqual(ctx.exception.kind, "FORBIDDEN")
        self.assertTrue(LobbyManager.is_active_member(self.db, lobby.id, self.alice.id))

    def test_only_host_can_dissolve(self):
        lobby = self.make_lobby(self.alice)
        LobbyManager.join_lobby(self.db, lobby.id, self.bob.id)
        with self.assertRaises(NotLobbyHost):
            LobbyManager.dissolve_lobby(self.db, lobby.id, self.bob.id)
        self.db.refresh(lobby)
        self.assertTrue(lobby.is_active)

    def test_dissolve_deactivates_lobby_and_memberships(self):
        lobby = self.make_lobby(self.alice)
        LobbyManager.join_lobby(self.db, lobby.id, self.bob.id)

        LobbyManager.dissolve_lobby(self.db, lobby.id, self.alice.id)

        self.db.refresh(lobby)
        self.assertFalse(lobby.is_active)
        active = self.db.query(LobbyPlayer).filter(
            LobbyPlayer.lobby_id == lobby.id,
            LobbyPlayer.is_active == True
        ).count()
        self.assertEqual(active, 0)

        carol = self.make_player("Carol")
        with self.assertRaises(LobbyNotFound):
            LobbyManager.join_lobby(self.db, lobby.id, carol.id)
        with self.assertRaises(LobbyNotFound):
            LobbyManager.join_lobby(self.db, lobby.code, carol.id)
        with self.assertRaises(LobbyNotFound):
            LobbyManager.dissolve_lobby(self.db, lobby.id, self.alice.id)

    def test_get_lobby_by_code_ignores_dissolved(self):
        lobby = self.make_lobby(self.alice)
        self.assertEqual(LobbyManager.get_lobby_by_code(self.db, lobby.code).id, lobby.id)
        LobbyManager.dissolve_lobby(self.db, lobby.id, self.alice.id)
        with self.assertRaises(LobbyNotFound):
            LobbyManager.get_lobby_by_code(self.db, lobby.code)


if __name__ == "__main__":
    unittest.main()
