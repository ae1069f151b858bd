import pytest

from watchparty.errors import InvalidMessage


@pytest.fixture()
def room_id(party, connect, transport):
    connect("a")
    connect("b")
    connect("outsider")
    room = party.lifecycle.create_room("a", "alice")
    party.lifecycle.join_room("b", room.room_id, "bob")
    transport.clear()
    return room.room_id


def test_message_reaches_room_including_sender(party, transport, room_id):
    party.messaging.send_message(room_id, "b", "bob", "hello there")
    assert transport.received("a", "message")[-1].data == "bob: hello there"
    assert transport.received("b", "message")[-1].data == "bob: hello there"
    assert not transport.received("outsider", "message")


def test_missing_name_falls_back_to_member_name(party, transport, room_id):
    assert party.messaging.send_message(room_id, "a", None, "hi") == "alice: hi"


@pytest.mark.parametrize("text", ["", "   ", None, 42])
def test_invalid_text(party, transport, room_id, text):
    with pytest.raises(InvalidMessage):
        party.messaging.send_message(room_id, "a", "alice", text)
    assert transport.broadcasts == []


def test_non_member_cannot_send(party, transport, room_id):
    with pytest.raises(InvalidMessage):
        party.messaging.send_message(room_id, "outsider", "eve", "hi")
    with pytest.raises(InvalidMessage):
        party.messaging.send_message("nope", "a", "alice", "hi")
    assert transport.broadcasts == []
