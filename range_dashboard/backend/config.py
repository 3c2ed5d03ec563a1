# backend/config.py
import os

# Camera server (frames are pulled from it, it is not part of this app)
CAMERA_SERVER_URL = os.getenv("CAMERA_SERVER_URL", "http://localhost:8000").rstrip("/")
CAMERA_HEADERS = {"ngrok-skip-browser-warning": "true"}
CAMERA_FPS = 1
CAMERA_NEXT_FRAME_TIMEOUT = 10  # long-poll seconds passed to /frame/next

# Live session poll loop
POLL_INTERVAL_S = 1.0

# Shot detection (Roboflow hosted inference)
ROBOFLOW_API_URL = os.getenv("ROBOFLOW_API_URL", "https://detect.roboflow.com").rstrip("/")
ROBOFLOW_API_KEY = os.getenv("ROBOFLOW_API_KEY", "")
ROBOFLOW_MODEL_ID = os.getenv("ROBOFLOW_MODEL_ID", "")
DETECTION_CONFIDENCE_MIN = 0.0

# Coaching advice (OpenAI-compatible chat completions endpoint)
COACH_API_URL = os.getenv("COACH_API_URL", "https://api.openai.com/v1/chat/completions")
COACH_API_KEY = os.getenv("COACH_API_KEY", "")
COACH_MODEL = os.getenv("COACH_MODEL", "gpt-4o-mini")
DEFAULT_SKILL_LEVEL = "intermediate"
SKILL_LEVELS = ("beginner", "intermediate", "advanced")

# Outbound HTTP
HTTP_TIMEOUT_S = 15

# Database and storage paths
DATABASE_PATH = "data/range.db"
FRAMES_DIR = "data/frames"
SAVE_FRAMES = True

# Report target plot: minimum half-width around the group center (image px)
TARGET_RANGE = 12

# Group size thresholds (image px) for the dashboard performance badge
GROUP_EXCELLENT_PX = 40.0
GROUP_GOOD_PX = 80.0
