# =============================================================================
# config.py — Central Configuration for the Sentinel Alertness Engine
# All tunable parameters live here. Never hardcode values in modules.
# Runtime-editable thresholds are only the STARTUP defaults; live values are
# held by sentinel_engine.config_store.ConfigStore.
# =============================================================================

import os

# ── Paths ─────────────────────────────────────────────────────────────────────
BASE_DIR    = os.path.dirname(os.path.abspath(__file__))
MODELS_DIR  = os.path.join(BASE_DIR, "models")
ASSETS_DIR  = os.path.join(BASE_DIR, "assets")
LOGS_DIR    = os.path.join(BASE_DIR, "logs")
DATA_DIR    = os.path.join(BASE_DIR, "data")
os.makedirs(LOGS_DIR, exist_ok=True)

# ── Frame source ──────────────────────────────────────────────────────────────
VIDEO_SOURCE        = 0          # cv2.VideoCapture argument (index or path)
FACE_LANDMARKER_MODEL_PATH = os.path.join(MODELS_DIR, "face_landmarker.task")
MP_NUM_FACES            = 1
MP_MIN_DETECTION_CONF   = 0.5
MP_MIN_TRACKING_CONF    = 0.5

# ── Landmark indices (478-point MediaPipe mesh) ───────────────────────────────
# EAR landmark indices (6 points per eye: p1..p6)
#   p1 = outer corner, p4 = inner corner, p2/p3 upper lid, p5/p6 lower lid
LEFT_EYE_EAR_IDX        = [362, 385, 387, 263, 373, 380]
RIGHT_EYE_EAR_IDX       = [33,  160, 158,  133, 153, 144]

# Inner lip opening (top, bottom) and mouth width (left, right corner)
MOUTH_INNER_TOP         = 13
MOUTH_INNER_BOTTOM      = 14
MOUTH_LEFT              = 78
MOUTH_RIGHT             = 308

# Floor for ratio denominators on degenerate geometry
GEOMETRY_EPSILON        = 1e-6

# ── Detection defaults (DetectionConfig) ──────────────────────────────────────
EAR_THRESHOLD           = 0.22    # Below this → eyes considered closed
MAR_THRESHOLD           = 0.60    # Above this → mouth considered yawning
YAW_THRESHOLD_DEG       = 45.0    # |yaw| above this → looking away
PITCH_THRESHOLD_DEG     = 25.0    # |pitch| above this → head down
TIME_TO_TRIGGER_S       = 1.5     # Sustained seconds before an alarm fires

# ── Frame clock ───────────────────────────────────────────────────────────────
# Upper bound on a single frame's delta-time (stalls, debugger pauses)
MAX_FRAME_DT_S          = 1.0

# ── Rolling analytics ─────────────────────────────────────────────────────────
RATE_WINDOW_MS          = 60_000  # Blink / yawn counting window
STRESS_BLINK_WEIGHT     = 1.5
STRESS_YAWN_WEIGHT      = 15.0
STRESS_MAX              = 100

# ── Emergency defaults (EmergencyConfig) ──────────────────────────────────────
EMERGENCY_ENABLED       = False
EMERGENCY_CONTACT_NAME  = "Emergency Contact"
EMERGENCY_CONTACT_NUMBER= ""
EMERGENCY_COOLDOWN_S    = 30.0    # Minimum seconds between two SOS dispatches

# ── Escalation / SOS ──────────────────────────────────────────────────────────
# Seconds a critical alarm (drowsy or head down) must persist before SOS
SOS_ESCALATION_S        = 5.0
# How long the SOS notification stays on the HUD
SOS_NOTICE_DURATION_MS  = 8_000
SOS_LOCATION_URL        = "https://maps.google.com/?q=40.7128,-74.0060"
SOS_MESSAGE_TEMPLATE    = ("EMERGENCY: Driver is unresponsive/drowsy. "
                           "Current Location: {location}")
WHATSAPP_URL_TEMPLATE   = "https://wa.me/{number}?text={text}"

# ── History ───────────────────────────────────────────────────────────────────
HISTORY_PATH            = os.path.join(DATA_DIR, "sentinel_history.json")
HISTORY_MAX_EVENTS      = 1000

# ── Alarm audio ───────────────────────────────────────────────────────────────
ALARM_SOUND_PATH        = os.path.join(ASSETS_DIR, "alarm.wav")
ALARM_TONE_FREQ         = 880.0   # Hz, used when no .wav is present
ALARM_TONE_DURATION     = 0.4     # seconds
ALARM_REPEAT_INTERVAL   = 0.6     # seconds between repeats while active

# ── HUD WebSocket bridge ──────────────────────────────────────────────────────
SERVER_HOST             = "0.0.0.0"
SERVER_PORT             = 5001
SERVER_CORS_ALLOWED_ORIGINS = "*"
SERVER_ASYNC_MODE       = "threading"
EMIT_EVENT_NAME         = "sentinel_frame"

DEBUG_MODE              = False
