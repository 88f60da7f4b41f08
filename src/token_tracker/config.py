import os
from dotenv import load_dotenv

# Load environment variables from a local .env file if present
load_dotenv()

# Database
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./token_tracker.db")

# Alert checking
ALERT_CHECK_INTERVAL_SECONDS = int(os.environ.get("ALERT_CHECK_INTERVAL_SECONDS", "30"))

# API server
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_RELOAD = os.environ.get("API_RELOAD", "false").lower() == "true"
