from datetime import datetime, timezone
from apscheduler.schedulers.background import BackgroundScheduler
from src.token_tracker.backend.database.db import SessionLocal
from src.token_tracker.backend.alerts.alert_handler import check_alerts
from src.token_tracker.config import ALERT_CHECK_INTERVAL_SECONDS
from termcolor import cprint

ALERT_CHECK_JOB_ID = "alert_check"

def run_scheduled_alert_check():
    """
    Runs one alert evaluation pass against the latest cached prices.
    Errors are logged and rolled back so the scheduler keeps ticking.
    """
    db = SessionLocal()
    try:
        events = check_alerts(db)
        cprint(f"[{datetime.now(timezone.utc)}] Alert check completed ({len(events)} fired).", "green")
        return events
    except Exception as e:
        cprint(f"Error during alert check: {e}", "red")
        db.rollback()
        return []
    finally:
        db.close()

def create_scheduler(interval_seconds: int = ALERT_CHECK_INTERVAL_SECONDS) -> BackgroundScheduler:
    """
    A single job instance at a time: passes never overlap, so an alert cannot
    fire twice inside its cooldown. Late runs are coalesced into one.
    """
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_scheduled_alert_check,
        'interval',
        seconds=interval_seconds,
        id=ALERT_CHECK_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    return scheduler

def request_immediate_check(scheduler: BackgroundScheduler):
    """Pulls the next pass forward to now instead of starting a parallel one."""
    scheduler.modify_job(ALERT_CHECK_JOB_ID, next_run_time=datetime.now(timezone.utc))
