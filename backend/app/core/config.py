"""
Runtime configuration.

Values come from the process environment, optionally seeded from a ``.env``
file in the project root.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# backend/app/core/config.py -> backend -> project root
env_path = Path(__file__).resolve().parents[3] / ".env"
load_dotenv(env_path)

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

DEMO_MODE_ENABLED = os.environ.get("DEMO_MODE", "true").lower() == "true"

FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")

DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")

# Also reject ID tokens revoked after sign-out (costs one Auth lookup per request)
FIREBASE_CHECK_REVOKED = os.environ.get("FIREBASE_CHECK_REVOKED", "false").lower() == "true"
