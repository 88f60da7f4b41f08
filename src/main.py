"""
Token Tracker
Main entry point for running the Token Tracker API server
"""

import os
import sys
from termcolor import cprint

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from src.token_tracker.config import (
    API_HOST, API_PORT, API_RELOAD, ALERT_CHECK_INTERVAL_SECONDS, DATABASE_URL,
)

def run_server():
    """Run the API server (database init and alert scheduler start with the app)"""
    import uvicorn

    try:
        uvicorn.run("src.token_tracker.backend.app:app", host=API_HOST, port=API_PORT, reload=API_RELOAD)
    except KeyboardInterrupt:
        cprint("\n👋 Gracefully shutting down...", "yellow")
    except Exception as e:
        cprint(f"\n❌ Fatal error running server: {str(e)}", "red")
        raise

if __name__ == "__main__":
    cprint("\nToken Tracker Starting...", "white", "on_blue")
    cprint(f"  • Database: {DATABASE_URL}", "white", "on_blue")
    cprint(f"  • Alert checks: every {ALERT_CHECK_INTERVAL_SECONDS}s", "white", "on_blue")
    cprint(f"  • API: http://{API_HOST}:{API_PORT}", "white", "on_blue")
    print("\n")

    run_server()
