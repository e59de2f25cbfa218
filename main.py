"""
main.py — Sentinel Entry Point
Wires the frame source, detection engine and adapters into the real-time loop.

Pipeline per frame (FrameDriver):
  1. VideoLandmarkSource.read()         → landmarks + facial transform
  2. DetectionEngine.process_frame()    → geometry, rates, timers, alarms, SOS
  3. WebSocketServer.emit_frame()       → live JSON → HUD

Usage:
  python main.py
  python main.py --video drive.mp4     # replay a recording
  python main.py --emergency-number "+1 555 123 4567" --sos
  python main.py --no-audio --no-server --debug
"""

import argparse
import logging
import signal

import config
from core.lifecycle import Lifecycle
from core.logger import get_logger, set_console_level
from sentinel_engine.config_store import ConfigStore
from sentinel_engine.data_structures import DetectionConfig, EmergencyConfig
from sentinel_engine.detection_engine import DetectionEngine
from sentinel_engine.frame_driver import FrameDriver
from sentinel_engine.history import HistoryStore
from sentinel_engine.interfaces import NullAudio

log = get_logger("sentinel")


# ──────────────────────────────────────────────────────────────────────────────
# Argument parsing
# ──────────────────────────────────────────────────────────────────────────────

def _video_arg(value: str):
    return int(value) if value.isdigit() else value


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Sentinel — driver alertness monitor")
    p.add_argument("--video", type=_video_arg, default=config.VIDEO_SOURCE,
                   help="Camera index or video file/URL (default: %(default)s).")
    p.add_argument("--model", default=config.FACE_LANDMARKER_MODEL_PATH,
                   help="Path to face_landmarker.task.")
    p.add_argument("--ear-threshold",   type=float, default=config.EAR_THRESHOLD)
    p.add_argument("--mar-threshold",   type=float, default=config.MAR_THRESHOLD)
    p.add_argument("--yaw-threshold",   type=float, default=config.YAW_THRESHOLD_DEG)
    p.add_argument("--pitch-threshold", type=float, default=config.PITCH_THRESHOLD_DEG)
    p.add_argument("--time-to-trigger", type=float, default=config.TIME_TO_TRIGGER_S)
    p.add_argument("--sos", action="store_true", default=config.EMERGENCY_ENABLED,
                   help="Enable SOS escalation.")
    p.add_argument("--emergency-name",   default=config.EMERGENCY_CONTACT_NAME)
    p.add_argument("--emergency-number", default=config.EMERGENCY_CONTACT_NUMBER)
    p.add_argument("--sos-cooldown", type=float, default=config.EMERGENCY_COOLDOWN_S,
                   help="Seconds between two SOS dispatches.")
    p.add_argument("--dry-run-sos", action="store_true",
                   help="Log SOS messages instead of opening the chat link.")
    p.add_argument("--history", default=config.HISTORY_PATH,
                   help="History JSON file.")
    p.add_argument("--no-audio",  action="store_true", help="Disable the alarm sound.")
    p.add_argument("--no-server", action="store_true", help="Disable the HUD bridge.")
    p.add_argument("--port", type=int, default=config.SERVER_PORT)
    p.add_argument("--debug", action="store_true", help="Verbose console output.")
    return p.parse_args(argv)


def build_config_store(args) -> ConfigStore:
    return ConfigStore(
        detection=DetectionConfig(
            ear_threshold=args.ear_threshold,
            mar_threshold=args.mar_threshold,
            yaw_threshold=args.yaw_threshold,
            pitch_threshold=args.pitch_threshold,
            time_to_trigger=args.time_to_trigger,
        ),
        emergency=EmergencyConfig(
            enabled=args.sos,
            contact_name=args.emergency_name,
            contact_number=args.emergency_number,
            cooldown_seconds=args.sos_cooldown,
        ),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    args = parse_args(argv)
    if args.debug:
        config.DEBUG_MODE = True
        set_console_level(logging.DEBUG)

    # Adapters import heavy native stacks; load them only when running for real
    from alerts.alert_system import AlarmSound
    from alerts.messaging import LogTransport, WhatsAppTransport
    from detection.landmark_source import VideoLandmarkSource

    lifecycle = Lifecycle()
    store = build_config_store(args)
    history = HistoryStore(args.history)

    if args.no_audio:
        audio = NullAudio()
    else:
        audio = AlarmSound()
        lifecycle.register("AlarmSound", audio.start, audio.stop)

    transport = LogTransport() if args.dry_run_sos else WhatsAppTransport()
    engine = DetectionEngine(store, history, audio, transport)

    try:
        source = VideoLandmarkSource(args.video, model_path=args.model)
    except RuntimeError as exc:
        log.error(str(exc))
        return 1
    driver = FrameDriver(source, engine)

    if not args.no_server:
        from server.websocket_server import WebSocketServer
        server = WebSocketServer(store, history, port=args.port)
        lifecycle.register("HUD bridge", server.start_background, server.stop)
        driver.add_listener(server.emit_frame)

    if config.DEBUG_MODE:
        def _trace(outcome, fps):
            s = outcome.state
            log.debug(
                f"EAR={s.ear:.3f} | MAR={s.mar:.3f} | "
                f"Yaw={s.yaw:+.1f}° | Pitch={s.pitch:+.1f}° | "
                f"Blinks={s.blink_rate}/min | Stress={s.stress_level}% | "
                f"{outcome.alert_message or '-'} | {fps:.1f} fps"
            )
        driver.add_listener(_trace)

    lifecycle.register("FrameDriver", None, driver.stop)
    signal.signal(signal.SIGTERM, lambda *_: driver.stop())

    try:
        lifecycle.start_all()
        driver.run()
    except KeyboardInterrupt:
        log.info("KeyboardInterrupt — shutting down.")
        driver.stop()
    finally:
        driver.release()
        lifecycle.stop_all()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
