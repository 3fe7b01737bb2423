import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# CamRent backend REST API
CAMRENT_API_BASE_URL = os.getenv(
    "CAMRENT_API_BASE_URL", "https://camrent-backend.up.railway.app/api"
).rstrip("/")

# Transport timeout in seconds. The console itself enforces no timeout on top of it.
CAMRENT_HTTP_TIMEOUT = float(os.getenv("CAMRENT_HTTP_TIMEOUT", "30"))

# Branch local time zone, used for workload day boundaries
CONSOLE_TIMEZONE = os.getenv("CONSOLE_TIMEZONE", "Asia/Ho_Chi_Minh")

# Booking-scoped contract creation. The backend only documents the verification
# shape so far; override once the booking endpoint is confirmed.
CONTRACT_CREATE_BOOKING_PATH = os.getenv(
    "CONTRACT_CREATE_BOOKING_PATH", "/Contracts/verification/{id}"
)
CONTRACT_CREATE_VERIFICATION_PATH = "/Contracts/verification/{id}"

# Prefix under which leased contract previews are served
PREVIEW_BASE_PATH = os.getenv("PREVIEW_BASE_PATH", "/previews").rstrip("/")

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
