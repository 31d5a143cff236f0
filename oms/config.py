import hashlib
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./oms.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Base URL of this API, used by the outbox when calling back into /jobs/{id}/notify
SERVER_URL = os.getenv("SERVER_URL", "http://localhost:8000")

# Frontend base URL for links in notifications and emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "XZ Reality Capture <noreply@xzrealitycapture.com>")
COMPANY_NAME = os.getenv("COMPANY_NAME", "XZ Reality Capture")

# Outbox delivery
OUTBOX_MAX_ATTEMPTS = int(os.getenv("OUTBOX_MAX_ATTEMPTS", "5"))
OUTBOX_RETRY_BASE_SECONDS = int(os.getenv("OUTBOX_RETRY_BASE_SECONDS", "60"))
OUTBOX_BATCH_SIZE = int(os.getenv("OUTBOX_BATCH_SIZE", "50"))
OUTBOX_HTTP_TIMEOUT = float(os.getenv("OUTBOX_HTTP_TIMEOUT", "15"))

# Shared secret the outbox presents when calling back into this API
INTERNAL_API_TOKEN = os.getenv("INTERNAL_API_TOKEN") or hashlib.sha256(
    f"internal:{SECRET_KEY}".encode()
).hexdigest()
