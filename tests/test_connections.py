# tests/test_connections.py
"""
Connection Lifecycle Tests
Request/respond state machine, chat room provisioning and race convergence
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from skillbridge import models
from skillbridge.crud import user as user_crud
from skillbridge.database import Base
from skillbridge.errors import (
    AlreadyConnected,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
)
from skillbridge.repository import SqlRepository
from skillbridge.services import connection_service, skill_catalog


@pytest.fixture
def users(make_user):
    return {
        "alice": make_user("Alice"),
        "bob": make_user("Bob"),
        "carol": make_user("Carol"),
    }


# ======================
# REQUEST
# ======================

def test_request_creates_pending_connection_with_default_message(repo, users):
    result = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)

    assert result["status"] == "pending"
    assert result["from_user_id"] == users["alice"].id
    assert result["to_user_id"] == users["bob"].id
    assert result["message"] == "I'd like to connect with you!"
    assert result["chat_room"] is None
    assert repo.find_chat_room_by_connection(result["connection_id"]) is None


def test_request_keeps_custom_message_and_event(repo, users):
    event = skill_catalog.create_event(repo, users["bob"].id, "Guitar", "teach", "beginner")

    result = connection_service.request_connection(
        repo, users["alice"].id, users["bob"].id, event_id=event["event_id"], message="  Hi Bob  "
    )

    assert result["message"] == "Hi Bob"
    assert result["event_id"] == event["event_id"]


def test_request_to_self_is_invalid(repo, users):
    with pytest.raises(InvalidRequest) as exc:
        connection_service.request_connection(repo, users["alice"].id, users["alice"].id)
    assert exc.value.details["user_id"] == users["alice"].id


def test_request_unknown_user_or_event(repo, users):
    with pytest.raises(NotFound):
        connection_service.request_connection(repo, users["alice"].id, 9999)
    with pytest.raises(NotFound):
        connection_service.request_connection(repo, users["alice"].id, users["bob"].id, event_id=42)


@pytest.mark.parametrize("decision", [None, "accepted", "rejected"])
def test_duplicate_request_fails_in_either_direction_and_any_status(repo, users, decision):
    alice, bob = users["alice"], users["bob"]
    first = connection_service.request_connection(repo, alice.id, bob.id)
    if decision:
        connection_service.respond_to_connection(repo, first["connection_id"], bob.id, decision)

    for sender, recipient in ((alice, bob), (bob, alice)):
        with pytest.raises(AlreadyConnected) as exc:
            connection_service.request_connection(repo, sender.id, recipient.id)
        assert exc.value.details["connection_id"] == first["connection_id"]


class ForgetfulPairRepository(SqlRepository):
    """Misses the existing pair once, as a racing request would."""

    def __init__(self, db):
        super().__init__(db)
        self.missed = False

    def find_connection_by_user_pair(self, user_a, user_b):
        if not self.missed:
            self.missed = True
            return None
        return super().find_connection_by_user_pair(user_a, user_b)


def test_pair_constraint_catches_racing_request(db_session, repo, users):
    first = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)

    with pytest.raises(AlreadyConnected) as exc:
        connection_service.request_connection(
            ForgetfulPairRepository(db_session), users["bob"].id, users["alice"].id
        )

    assert exc.value.details["connection_id"] == first["connection_id"]
    assert db_session.query(models.Connection).count() == 1


# ======================
# RESPOND
# ======================

def test_accept_provisions_one_chat_room(db_session, repo, users):
    conn = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)

    result = connection_service.respond_to_connection(
        repo, conn["connection_id"], users["bob"].id, "accepted"
    )

    assert result["status"] == "accepted"
    assert result["chat_room"]["connection_id"] == conn["connection_id"]
    assert result["chat_room"]["last_message_at"] is not None
    assert db_session.query(models.ChatRoom).count() == 1


def test_reject_has_no_side_effects(db_session, repo, users):
    conn = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)

    result = connection_service.respond_to_connection(
        repo, conn["connection_id"], users["bob"].id, "rejected"
    )

    assert result["status"] == "rejected"
    assert result["chat_room"] is None
    assert db_session.query(models.ChatRoom).count() == 0


@pytest.mark.parametrize("actor", ["alice", "carol"])
def test_only_recipient_may_respond(repo, users, actor):
    conn = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)

    with pytest.raises(Forbidden):
        connection_service.respond_to_connection(
            repo, conn["connection_id"], users[actor].id, "accepted"
        )

    assert repo.find_connection_by_id(conn["connection_id"]).status == models.ConnectionStatus.PENDING


@pytest.mark.parametrize("first, second", [
    ("accepted", "accepted"),
    ("accepted", "rejected"),
    ("rejected", "accepted"),
    ("rejected", "rejected"),
])
def test_terminal_states_reject_further_responses(db_session, repo, users, first, second):
    conn = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)
    connection_service.respond_to_connection(repo, conn["connection_id"], users["bob"].id, first)

    with pytest.raises(InvalidTransition) as exc:
        connection_service.respond_to_connection(repo, conn["connection_id"], users["bob"].id, second)

    assert exc.value.details == {
        "connection_id": conn["connection_id"],
        "current": first,
        "requested": second,
    }
    assert db_session.query(models.ChatRoom).count() == (1 if first == "accepted" else 0)


def test_respond_validates_decision_and_existence(repo, users):
    conn = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)

    with pytest.raises(InvalidRequest):
        connection_service.respond_to_connection(repo, conn["connection_id"], users["bob"].id, "pending")
    with pytest.raises(InvalidRequest):
        connection_service.respond_to_connection(repo, conn["connection_id"], users["bob"].id, "maybe")
    with pytest.raises(NotFound):
        connection_service.respond_to_connection(repo, 9999, users["bob"].id, "accepted")


# ======================
# CONCURRENT ACCEPT
# ======================

class InterleavedRepository(SqlRepository):
    """
    Lets a rival caller finish its whole accept after our pending check
    but before our conditional status update.
    """

    def __init__(self, db, rival, rival_decision, responder_id):
        super().__init__(db)
        self.rival = rival
        self.rival_decision = rival_decision
        self.responder_id = responder_id
        self.rival_result = None

    def update_connection_status(self, connection_id, expected, new_status):
        if self.rival_result is None:
            self.rival_result = connection_service.respond_to_connection(
                self.rival, connection_id, self.responder_id, self.rival_decision
            )
        return super().update_connection_status(connection_id, expected, new_status)


@pytest.fixture
def file_sessions(tmp_path):
    """Two independent sessions on one SQLite file, like two request handlers."""
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    first, second = factory(), factory()
    yield first, second
    first.close()
    second.close()
    engine.dispose()


def _seed_pending(db):
    alice = user_crud.create_user(db, email="alice@example.com", name="Alice")
    bob = user_crud.create_user(db, email="bob@example.com", name="Bob")
    db.commit()
    conn = connection_service.request_connection(SqlRepository(db), alice.id, bob.id)
    return alice.id, bob.id, conn["connection_id"]


def test_concurrent_accepts_share_one_chat_room(file_sessions):
    first, second = file_sessions
    _, bob_id, connection_id = _seed_pending(first)

    racing = InterleavedRepository(first, SqlRepository(second), "accepted", bob_id)
    result = connection_service.respond_to_connection(racing, connection_id, bob_id, "accepted")

    assert racing.rival_result["status"] == "accepted"
    assert result["status"] == "accepted"
    assert result["chat_room"]["chat_room_id"] == racing.rival_result["chat_room"]["chat_room_id"]
    assert first.query(models.ChatRoom).count() == 1


def test_accept_losing_to_reject_is_invalid_transition(file_sessions):
    first, second = file_sessions
    _, bob_id, connection_id = _seed_pending(first)

    racing = InterleavedRepository(first, SqlRepository(second), "rejected", bob_id)
    with pytest.raises(InvalidTransition) as exc:
        connection_service.respond_to_connection(racing, connection_id, bob_id, "accepted")

    assert exc.value.details["current"] == "rejected"
    assert first.query(models.ChatRoom).count() == 0


# ======================
# RETRIEVAL
# ======================

def test_get_connection_is_party_only(repo, users):
    conn = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)
    connection_service.respond_to_connection(repo, conn["connection_id"], users["bob"].id, "accepted")

    for party in ("alice", "bob"):
        result = connection_service.get_connection(repo, conn["connection_id"], users[party].id)
        assert result["chat_room"] is not None

    with pytest.raises(Forbidden):
        connection_service.get_connection(repo, conn["connection_id"], users["carol"].id)


def test_list_connections_with_direction_and_status(repo, users):
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    sent = connection_service.request_connection(repo, alice.id, bob.id)
    received = connection_service.request_connection(repo, carol.id, alice.id)
    connection_service.respond_to_connection(repo, received["connection_id"], alice.id, "accepted")

    everything = connection_service.list_connections(repo, alice.id, "all")
    directions = {c["connection_id"]: c["direction"] for c in everything}
    assert directions == {sent["connection_id"]: "sent", received["connection_id"]: "received"}

    accepted = connection_service.list_connections(repo, alice.id, "accepted")
    assert [c["connection_id"] for c in accepted] == [received["connection_id"]]
    assert accepted[0]["chat_room"] is not None

    with pytest.raises(InvalidRequest):
        connection_service.list_connections(repo, alice.id, "archived")


# ======================
# CHAT
# ======================

def test_chat_messages_between_parties(repo, users):
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    conn = connection_service.request_connection(repo, alice.id, bob.id)
    accepted = connection_service.respond_to_connection(repo, conn["connection_id"], bob.id, "accepted")
    room_id = accepted["chat_room"]["chat_room_id"]

    assert connection_service.open_chat_room(repo, conn["connection_id"], alice.id)["chat_room_id"] == room_id

    connection_service.post_message(repo, room_id, alice.id, "Hola!")
    connection_service.post_message(repo, room_id, bob.id, "  Hi there  ")

    messages = connection_service.list_messages(repo, room_id, bob.id)
    assert [(m["sender_id"], m["content"]) for m in messages] == [
        (alice.id, "Hola!"),
        (bob.id, "Hi there"),
    ]

    with pytest.raises(Forbidden):
        connection_service.post_message(repo, room_id, carol.id, "let me in")
    with pytest.raises(Forbidden):
        connection_service.list_messages(repo, room_id, carol.id)
    with pytest.raises(InvalidRequest):
        connection_service.post_message(repo, room_id, alice.id, "   ")


def test_chat_room_requires_accepted_connection(repo, users):
    conn = connection_service.request_connection(repo, users["alice"].id, users["bob"].id)

    with pytest.raises(InvalidRequest):
        connection_service.open_chat_room(repo, conn["connection_id"], users["alice"].id)
    with pytest.raises(NotFound):
        connection_service.list_messages(repo, 9999, users["alice"].id)
