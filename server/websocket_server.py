"""
server/websocket_server.py — Flask-SocketIO HUD Bridge
Streams each frame's DetectionState, alert message and SOS notification to
browser HUDs, and is the control surface for the live configuration.

Socket events (client → server):
    set_detection_config   {earThreshold?, marThreshold?, yawThreshold?,
                            pitchThreshold?, timeToTrigger?}
    set_emergency_config   {enabled?, contactName?, contactNumber?, cooldown?}
    set_seatbelt           {off: bool}
    ping_sentinel

HTTP:
    GET    /health
    GET    /config
    GET    /history
    DELETE /history
"""

import threading
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

import config
from sentinel_engine.config_store import ConfigStore
from sentinel_engine.data_structures import FrameOutcome
from sentinel_engine.history import HistoryStore
from core.logger import get_logger

log = get_logger(__name__)


def _as_bool(value) -> bool:
    """Strict bool parsing; bool("false") would be True."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# HUD field name → (config field name, coercion)
_DETECTION_FIELDS = {
    "earThreshold":   ("ear_threshold",   float),
    "marThreshold":   ("mar_threshold",   float),
    "yawThreshold":   ("yaw_threshold",   float),
    "pitchThreshold": ("pitch_threshold", float),
    "timeToTrigger":  ("time_to_trigger", float),
}
_EMERGENCY_FIELDS = {
    "enabled":       ("enabled",          _as_bool),
    "contactName":   ("contact_name",     str),
    "contactNumber": ("contact_number",   str),
    "cooldown":      ("cooldown_seconds", float),
}


def _coerce(data: dict, fields: dict) -> dict:
    """Map HUD keys to config fields; unknown keys are ignored."""
    changes = {}
    for key, value in (data or {}).items():
        if key in fields:
            name, cast = fields[key]
            changes[name] = cast(value)
    return changes


def build_payload(outcome: FrameOutcome, fps: float = 0.0) -> dict:
    """Per-frame JSON payload for the HUD."""
    payload = outcome.state.to_dict()
    payload.update({
        "faceDetected":    outcome.face_detected,
        "alertMessage":    outcome.alert_message,
        "sosNotification": outcome.notification.to_dict(),
        "events":          [e.to_dict() for e in outcome.events],
        "fps":             round(fps, 1),
    })
    return payload


class WebSocketServer:
    """
    Flask-SocketIO server bridging the frame loop to the HUD.

    Usage:
        server = WebSocketServer(config_store, history)
        server.start_background()             # non-blocking
        server.emit_frame(outcome, fps)       # call from the frame loop
        server.stop()
    """

    def __init__(
        self,
        config_store: ConfigStore,
        history: HistoryStore,
        host: str = config.SERVER_HOST,
        port: int = config.SERVER_PORT,
        cors_origins: str = config.SERVER_CORS_ALLOWED_ORIGINS,
        async_mode: str = config.SERVER_ASYNC_MODE,
    ):
        self.host = host
        self.port = port
        self._config = config_store
        self._history = history
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._client_count: int = 0

        # ── Flask + SocketIO setup ─────────────────────────────────────────
        self.app = Flask(__name__, static_folder=None)
        CORS(self.app, origins=cors_origins)

        self.socketio = SocketIO(
            self.app,
            cors_allowed_origins=cors_origins,
            async_mode=async_mode,
            logger=False,
            engineio_logger=False,
        )

        self._register_routes()
        self._register_events()

    # ──────────────────────────────────────────────────────────────────────────
    # Flask routes
    # ──────────────────────────────────────────────────────────────────────────

    def _register_routes(self) -> None:
        @self.app.route("/health")
        def health():
            return jsonify({
                "status": "ok",
                "clients": self._client_count,
                "server": "Sentinel HUD Bridge",
                "port": self.port,
            })

        @self.app.route("/config")
        def get_config():
            return jsonify(self.config_payload())

        @self.app.route("/history", methods=["GET"])
        def get_history():
            return jsonify(self._history.to_list())

        @self.app.route("/history", methods=["DELETE"])
        def clear_history():
            self._history.clear()
            return jsonify({"status": "cleared"})

    # ──────────────────────────────────────────────────────────────────────────
    # SocketIO events
    # ──────────────────────────────────────────────────────────────────────────

    def _register_events(self) -> None:
        @self.socketio.on("connect")
        def on_connect():
            self._client_count += 1
            log.info(f"HUD connected. Clients: {self._client_count}")
            self.socketio.emit("config", self.config_payload())

        @self.socketio.on("disconnect")
        def on_disconnect(*_):
            self._client_count = max(0, self._client_count - 1)
            log.info(f"HUD disconnected. Clients: {self._client_count}")

        @self.socketio.on("ping_sentinel")
        def on_ping(*_):
            self.socketio.emit("pong_sentinel", {"status": "alive"})

        @self.socketio.on("set_detection_config")
        def on_detection_config(data):
            self.apply_detection_config(data)

        @self.socketio.on("set_emergency_config")
        def on_emergency_config(data):
            self.apply_emergency_config(data)

        @self.socketio.on("set_seatbelt")
        def on_seatbelt(data):
            try:
                off = _as_bool((data or {}).get("off", False))
            except ValueError as exc:
                log.warning(f"Rejected seatbelt toggle: {exc}")
                return
            self._config.set_seatbelt_off(off)

    # ──────────────────────────────────────────────────────────────────────────
    # Control surface
    # ──────────────────────────────────────────────────────────────────────────

    def apply_detection_config(self, data: dict) -> None:
        try:
            changes = _coerce(data, _DETECTION_FIELDS)
        except (TypeError, ValueError) as exc:
            log.warning(f"Rejected detection config {data!r}: {exc}")
            return
        if changes:
            self._config.update_detection(**changes)
            self.socketio.emit("config", self.config_payload())

    def apply_emergency_config(self, data: dict) -> None:
        try:
            changes = _coerce(data, _EMERGENCY_FIELDS)
        except (TypeError, ValueError) as exc:
            log.warning(f"Rejected emergency config: {exc}")
            return
        if changes:
            self._config.update_emergency(**changes)
            self.socketio.emit("config", self.config_payload())

    def config_payload(self) -> dict:
        snap = self._config.snapshot()
        det, emg = snap.detection, snap.emergency
        return {
            "detection": {
                "earThreshold":   det.ear_threshold,
                "marThreshold":   det.mar_threshold,
                "yawThreshold":   det.yaw_threshold,
                "pitchThreshold": det.pitch_threshold,
                "timeToTrigger":  det.time_to_trigger,
            },
            "emergency": {
                "enabled":       emg.enabled,
                "contactName":   emg.contact_name,
                "contactNumber": emg.contact_number,
                "cooldown":      emg.cooldown_seconds,
            },
            "seatbeltOff": snap.seatbelt_off,
        }

    # ──────────────────────────────────────────────────────────────────────────
    # Data emission
    # ──────────────────────────────────────────────────────────────────────────

    def emit_frame(self, outcome: FrameOutcome, fps: float = 0.0) -> None:
        """Broadcast one frame's outcome to all connected HUD clients."""
        if not self._running:
            return
        self.socketio.emit(config.EMIT_EVENT_NAME, build_payload(outcome, fps))

    # ──────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    def start_background(self) -> None:
        """Start the SocketIO server in a daemon thread; returns immediately."""
        if self._running:
            log.info("Server already running.")
            return

        self._running = True
        self._thread = threading.Thread(
            target=self._run_server,
            daemon=True,
            name="sentinel-hud-server",
        )
        self._thread.start()
        log.info(
            f"HUD bridge at http://{self.host}:{self.port}  "
            f"(health: http://localhost:{self.port}/health)"
        )

    def _run_server(self) -> None:
        self.socketio.run(
            self.app,
            host=self.host,
            port=self.port,
            use_reloader=False,
            log_output=False,
            allow_unsafe_werkzeug=True,
        )

    def stop(self) -> None:
        """Stop emitting; the daemon server thread ends with the process."""
        self._running = False
        log.info("HUD bridge stopped.")

    @property
    def client_count(self) -> int:
        return self._client_count
