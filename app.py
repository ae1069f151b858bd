from flask import Flask, jsonify, request
from flask_socketio import SocketIO, emit
from functools import wraps
import logging

from watchparty import WatchParty, WatchPartyError
from watchparty.config import Config
from watchparty.logging_config import configure_logging
from watchparty.transport import SocketIOTransport

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    if not app.config["TESTING"]:
        configure_logging(app.config["LOG_LEVEL"], app.config["LOG_FORMAT"])
    socketio = SocketIO(
        app,
        cors_allowed_origins=app.config["CORS_ALLOWED_ORIGINS"],
        async_mode=app.config["SOCKETIO_ASYNC_MODE"],
    )
    party = WatchParty(SocketIOTransport(socketio))
    app.extensions["watchparty"] = party
    register_routes(app, party)
    register_socket_events(socketio, party)
    logger.info("Watch party server initialized (async mode %s)", socketio.async_mode)
    return app


def _payload(data):
    return data if isinstance(data, dict) else {}


def _room_id(data):
    if isinstance(data, str):
        return data
    return _payload(data).get("roomID")


def reports_errors(fail_event=None):
    """Turn a rejected request into notices for the requesting connection only."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except WatchPartyError as e:
                logger.info("Rejected %s from %s: %s", f.__name__, request.sid, e.message)
                if fail_event:
                    emit(fail_event, e.to_payload())
                emit("error", e.message)
                return {"ok": False, **e.to_payload()}
        return wrapper
    return decorator


def register_routes(app, party):
    @app.errorhandler(500)
    def internal_error(error):
        logger.exception("Unhandled error serving %s", request.path)
        return jsonify({"error": "internal server error"}), 500

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "rooms": len(party.rooms), "users": len(party.users)})

    @app.route("/api/rooms")
    def api_rooms():
        return jsonify([room.snapshot() for room in party.rooms.rooms()])

    @app.route("/api/users")
    def api_users():
        return jsonify(party.users.snapshot())


def register_socket_events(socketio, party):
    lifecycle = party.lifecycle
    playback = party.playback

    @socketio.on_error_default
    def default_error_handler(e):
        logger.exception("Socket handler failed for %s: %s", request.sid, e)
        emit("error", "Something went wrong handling that request.")

    @socketio.on("connect")
    def on_connect(auth=None):
        session_id = _payload(auth).get("sessionID") or request.args.get("sessionID")
        lifecycle.connect(request.sid, session_id)

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        lifecycle.disconnect(request.sid)

    @socketio.on("new-user")
    @reports_errors()
    def new_user(name=None):
        if isinstance(name, dict):
            name = name.get("name")
        lifecycle.register_user(request.sid, name)
        return {"ok": True}

    @socketio.on("create-room")
    @reports_errors(fail_event="room-create-fail")
    def create_room(data=None):
        name = data if isinstance(data, str) else _payload(data).get("name")
        room = lifecycle.create_room(request.sid, name)
        return {"ok": True, "roomID": room.room_id}

    @socketio.on("join-room")
    @reports_errors(fail_event="room-join-fail")
    def join_room(data=None):
        data = _payload(data)
        room = lifecycle.join_room(request.sid, data.get("roomID"), data.get("name"))
        return {"ok": True, "roomID": room.room_id}

    @socketio.on("user-leaves-room")
    @reports_errors()
    def user_leaves_room(data=None):
        removal = lifecycle.leave_room(request.sid, _room_id(data))
        return {"ok": True, "deleted": removal.deleted}

    @socketio.on("roomLeader-changeRequest")
    @reports_errors()
    def leader_change_request(data=None):
        data = _payload(data)
        new_leader = lifecycle.transfer_leadership(data.get("roomID"), request.sid, data.get("newLeaderID"))
        return {"ok": True, "newLeaderName": new_leader.name}

    @socketio.on("sendMessage")
    @reports_errors()
    def send_message(data=None):
        data = _payload(data)
        party.messaging.send_message(data.get("roomID"), request.sid, data.get("name"), data.get("message"))
        return {"ok": True}

    @socketio.on("videoLink-set")
    @reports_errors()
    def video_link_set(data=None):
        data = _payload(data)
        playback.set_link(data.get("roomID"), request.sid, data.get("link"))
        return {"ok": True}

    @socketio.on("set-videoTime")
    @reports_errors()
    def set_video_time(data=None):
        data = _payload(data)
        accepted = playback.set_time(data.get("roomID"), request.sid, data.get("currentTime"))
        return {"ok": True, "accepted": accepted}

    @socketio.on("play-video")
    @reports_errors()
    def play_video(data=None):
        playback.play(_room_id(data), request.sid)
        return {"ok": True}

    @socketio.on("pause-video")
    @reports_errors()
    def pause_video(data=None):
        playback.pause(_room_id(data), request.sid)
        return {"ok": True}

    @socketio.on("set-playbackRate")
    @reports_errors()
    def set_playback_rate(data=None):
        data = _payload(data)
        playback.set_rate(data.get("roomID"), request.sid, data.get("rate"))
        return {"ok": True}

    @socketio.on("request-initial-sync")
    def request_initial_sync(data=None):
        requester = request.sid
        try:
            snapshot = playback.request_initial_sync(_room_id(data), requester)
        except WatchPartyError as e:
            logger.info("Initial sync for %s failed: %s", requester, e.message)
            return {"ok": False, **e.to_payload()}
        if snapshot is None:
            return None
        return {"ok": True, "snapshot": snapshot}


if __name__ == "__main__":
    app = create_app()
    socketio = app.extensions["socketio"]
    socketio.run(app, host=app.config["HOST"], port=app.config["PORT"])
