import logging
import math
import numbers
import threading
import time

from watchparty.errors import InvalidRequest, NotInRoom, SyncUnavailable

logger = logging.getLogger(__name__)

ALLOWED_PLAYBACK_RATES = (0.25, 0.5, 0.75, 1, 1.25, 1.5, 1.75, 2)
TIME_UPDATE_INTERVAL = 0.25
# Followers land slightly ahead to cover network and decode latency.
TIME_COMPENSATION = 1
LEADER_SYNC_TIMEOUT = 4.0


def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)


def validate_rate(rate):
    if not _is_number(rate) or rate not in ALLOWED_PLAYBACK_RATES:
        raise InvalidRequest(f"Playback rate must be one of {', '.join(str(r) for r in ALLOWED_PLAYBACK_RATES)}.")
    return rate


def validate_time(seconds):
    if not _is_number(seconds) or seconds < 0:
        raise InvalidRequest("Video time must be a non-negative number of seconds.")
    return int(seconds)


class RateLimiter:
    """Accepts at most one event per key per ``interval`` seconds."""

    def __init__(self, interval=TIME_UPDATE_INTERVAL, clock=time.monotonic):
        self.interval = interval
        self.clock = clock
        self._last = {}

    def allow(self, key) -> bool:
        now = self.clock()
        last = self._last.get(key)
        if last is not None and now - last < self.interval:
            return False
        self._last[key] = now
        return True

    def forget(self, key):
        self._last.pop(key, None)

    def __len__(self):
        return len(self._last)


class PlaybackEngine:
    """Leader-driven playback state for each room.

    Only the leader writes. Every accepted change is stored through the
    room store and relayed to the rest of the room; the leader's own player
    already reflects it.
    """

    def __init__(self, rooms, leadership, transport, limiter=None, sync_timeout=LEADER_SYNC_TIMEOUT):
        self.rooms = rooms
        self.leadership = leadership
        self.transport = transport
        self.limiter = limiter if limiter is not None else RateLimiter()
        self.sync_timeout = sync_timeout
        self._pending = {}
        self._pending_lock = threading.Lock()

    def set_link(self, room_id, requester_id, link):
        if not isinstance(link, str):
            raise InvalidRequest("Video link must be a string.")
        self.leadership.require_leader(room_id, requester_id)
        link = link.strip()
        self.rooms.update_playback(room_id, video_link=link, current_time=0)
        self.transport.broadcast(room_id, "set-videoLink", link, skip=requester_id)
        logger.info("Room %s video set to %s", room_id, link)

    def set_time(self, room_id, requester_id, seconds) -> bool:
        seconds = validate_time(seconds)
        self.leadership.require_leader(room_id, requester_id)
        if not self.limiter.allow(requester_id):
            return False
        self.rooms.update_playback(room_id, current_time=seconds)
        self.transport.broadcast(room_id, "videoTime-set", seconds + TIME_COMPENSATION, skip=requester_id)
        logger.debug("Room %s time set to %ss", room_id, seconds)
        return True

    def play(self, room_id, requester_id):
        self._set_paused(room_id, requester_id, False)

    def pause(self, room_id, requester_id):
        self._set_paused(room_id, requester_id, True)

    def _set_paused(self, room_id, requester_id, paused):
        self.leadership.require_leader(room_id, requester_id)
        self.rooms.update_playback(room_id, paused=paused)
        if paused:
            self.transport.broadcast(room_id, "video-paused", "Video paused", skip=requester_id)
        else:
            self.transport.broadcast(room_id, "video-played", "Video played", skip=requester_id)
        logger.info("Room %s video %s", room_id, "paused" if paused else "played")

    def set_rate(self, room_id, requester_id, rate):
        rate = validate_rate(rate)
        self.leadership.require_leader(room_id, requester_id)
        self.rooms.update_playback(room_id, playback_rate=rate)
        self.transport.broadcast(room_id, "playbackRate-set", rate, skip=requester_id)
        logger.info("Room %s playback rate set to %s", room_id, rate)

    def request_initial_sync(self, room_id, requester_id):
        """Pull a live snapshot from the leader for a follower that just got ready.

        Blocks the calling handler until the leader answers or the timeout
        passes. Returns None when the requester left or disconnected while
        waiting; the late reply is dropped.
        """
        room = self.rooms.require(room_id)
        if not room.is_member(requester_id):
            raise NotInRoom()
        leader = room.leader
        if leader.connection_id == requester_id:
            raise SyncUnavailable("You are the room leader; there is nobody to sync from.")

        token = object()
        with self._pending_lock:
            self._pending[requester_id] = token
        logger.info("Room %s: %s requested a sync from leader %s", room_id, requester_id, leader.connection_id)
        try:
            reply = self.transport.request(
                leader.connection_id,
                "request-leader-state",
                {"roomID": room_id, "requesterID": requester_id},
                timeout=self.sync_timeout,
            )
        finally:
            with self._pending_lock:
                live = self._pending.get(requester_id) is token
                if live:
                    del self._pending[requester_id]

        if not live:
            logger.info("Dropping leader state for %s in room %s: request was cancelled", requester_id, room_id)
            return None
        snapshot = self._parse_snapshot(reply)
        room = self.rooms.get(room_id)
        if room is None or not room.is_member(requester_id):
            logger.info("Dropping leader state for %s: no longer in room %s", requester_id, room_id)
            return None
        if room.is_leader(leader.connection_id):
            self.rooms.update_playback(
                room_id,
                current_time=int(snapshot["currentTime"]),
                paused=snapshot["videoPaused"],
                playback_rate=snapshot["currentPlaybackRate"],
            )
        return snapshot

    def _parse_snapshot(self, reply):
        if not isinstance(reply, dict):
            raise SyncUnavailable()
        if reply.get("error"):
            raise SyncUnavailable(f"The room leader could not report playback state: {reply['error']}")
        current_time = reply.get("currentTime")
        paused = reply.get("videoPaused")
        rate = reply.get("currentPlaybackRate")
        valid = (
            _is_number(current_time)
            and current_time >= 0
            and isinstance(paused, bool)
            and _is_number(rate)
            and rate in ALLOWED_PLAYBACK_RATES
        )
        if not valid:
            logger.warning("Leader sent a malformed playback snapshot: %r", reply)
            raise SyncUnavailable()
        return {"currentTime": current_time, "videoPaused": paused, "currentPlaybackRate": rate}

    def cancel_sync(self, connection_id):
        with self._pending_lock:
            return self._pending.pop(connection_id, None) is not None

    def forget(self, connection_id):
        """Drop per-connection state once a connection is gone."""
        self.limiter.forget(connection_id)
        self.cancel_sync(connection_id)
