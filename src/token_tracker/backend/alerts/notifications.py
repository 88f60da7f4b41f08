from datetime import datetime, timezone
from termcolor import cprint
from src.token_tracker.backend.alerts.alert_models import TriggerEvent

def notify_trigger(event: TriggerEvent):
    """
    Default notifier: prints the fired alert to the terminal.
    """
    fired_at = datetime.fromtimestamp(event.timestamp / 1000, tz=timezone.utc)
    cprint(f"🚨 Alert: {event.message}", "white", "on_red")
    cprint(f"[INFO] {event.tokenSymbol} alert {event.alertId} fired at {fired_at:%Y-%m-%d %H:%M:%S} UTC", "yellow")
