# petcare/config.py
import os

# ------------------------------- Gemini -------------------------------
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_VISION_MODEL = os.getenv("GEMINI_VISION_MODEL", GEMINI_MODEL)
GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "60"))

# ------------------------------- Usage limits -------------------------------
GUEST_USAGE_LIMIT = int(os.getenv("GUEST_USAGE_LIMIT", "3"))
USAGE_BACKEND = os.getenv("USAGE_BACKEND", "memory")  # memory | redis
USAGE_LOCK_TIMEOUT_SECONDS = float(os.getenv("USAGE_LOCK_TIMEOUT_SECONDS", "120"))

# ------------------------------- Symptom checks -------------------------------
HISTORY_DEFAULT_LIMIT = int(os.getenv("HISTORY_DEFAULT_LIMIT", "20"))
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
