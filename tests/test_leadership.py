import pytest

from watchparty.errors import NotLeader, RoomNotFound, TargetNotInRoom
from watchparty.leadership import LeadershipManager
from watchparty.rooms import Member, RoomStore
from watchparty.sessions import SessionRegistry


@pytest.fixture()
def store():
    return RoomStore(SessionRegistry())


@pytest.fixture()
def room(store):
    room = store.create("a", "alice")
    store.join(room.room_id, "b", "bob")
    store.join(room.room_id, "c", "carol")
    return room


def test_transfer_to_member(store, room):
    leadership = LeadershipManager(store)
    new_leader = leadership.transfer(room.room_id, "a", "c")
    assert new_leader == Member("c", "carol")
    assert room.leader_id == "c"
    assert room.is_leader("c")
    assert not room.is_leader("a")


def test_transfer_by_follower_is_rejected(store, room):
    leadership = LeadershipManager(store)
    with pytest.raises(NotLeader):
        leadership.transfer(room.room_id, "b", "c")
    assert room.leader_id == "a"


def test_transfer_to_outsider_leaves_leader_unchanged(store, room):
    leadership = LeadershipManager(store)
    with pytest.raises(TargetNotInRoom):
        leadership.transfer(room.room_id, "a", "zed")
    assert room.leader == Member("a", "alice")


def test_transfer_in_missing_room(store):
    with pytest.raises(RoomNotFound):
        LeadershipManager(store).transfer("nope", "a", "b")


def test_require_leader(store, room):
    leadership = LeadershipManager(store)
    assert leadership.require_leader(room.room_id, "a") is room
    with pytest.raises(NotLeader):
        leadership.require_leader(room.room_id, "b")
    with pytest.raises(NotLeader):
        leadership.require_leader(room.room_id, "stranger")

