class WatchPartyError(Exception):
    """Base for every rejection reported back to the requesting connection.

    Rejections never mutate room state and are never broadcast.
    """

    code = "error"
    default_message = "Request failed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self):
        return {"code": self.code, "message": self.message}


class AlreadyInRoom(WatchPartyError):
    code = "already-in-room"
    default_message = "You are already in a room. Leave it first."


class RoomNotFound(WatchPartyError):
    code = "room-not-found"
    default_message = "Room does not exist."


class RoomFull(WatchPartyError):
    code = "room-full"
    default_message = "Room is full."


class NotInRoom(WatchPartyError):
    code = "not-in-room"
    default_message = "You are not a member of this room."


class NotLeader(WatchPartyError):
    code = "not-leader"
    default_message = "Only the room leader can do that."


class TargetNotInRoom(WatchPartyError):
    code = "target-not-in-room"
    default_message = "That user is not in this room."


class InvalidMessage(WatchPartyError):
    code = "invalid-message"
    default_message = "Message could not be sent. Invalid room or user not in room."


class InvalidRequest(WatchPartyError):
    code = "invalid-request"
    default_message = "Invalid request."


class SyncTimeout(WatchPartyError):
    code = "sync-timeout"
    default_message = "The room leader did not answer in time. Try syncing again."


class SyncUnavailable(WatchPartyError):
    code = "sync-unavailable"
    default_message = "Playback state is not available right now. Try syncing again."
