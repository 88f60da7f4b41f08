import uuid
from collections.abc import Callable
from sqlalchemy.orm import Session
from termcolor import cprint
from src.token_tracker.backend.alerts.alert_models import Alert, AlertDefinition, TriggerEvent
from src.token_tracker.backend.alerts.conditions import AlertCheckOutcome, FIELD_GETTERS, check_alert
from src.token_tracker.backend.alerts.notifications import notify_trigger
from src.token_tracker.backend.database.operations import (
    add_alert, get_alerts, get_token_by_symbol, get_tokens, now_ms, save_alert_trigger, to_alert, to_token,
)
from src.token_tracker.backend.prices.price_cache import get_all_prices
from src.token_tracker.backend.tokens.token_models import PriceData, Token

Notifier = Callable[[TriggerEvent], None]

# Threshold each alert type cannot be created without
REQUIRED_THRESHOLDS = {
    "price_above": "priceAbove",
    "price_below": "priceBelow",
    "price_change": "priceChangePercent",
    "volume_above": "volumeAbove",
    "volume_below": "volumeBelow",
    "ath_distance": "athDistancePercent",
    "percent_from_ath": "percentFromAthThreshold",
}

def validate_alert(alert: AlertDefinition) -> None:
    """
    Validates that the given alert carries everything its type needs.
    Raises ValueError with an appropriate message if any required field is missing or invalid.
    The evaluator itself never re-checks this; it treats missing fields as "not met".
    """
    if not alert.tokenSymbol or not alert.tokenSymbol.strip():
        raise ValueError("Missing 'tokenSymbol' in alert.")
    if not alert.message or not alert.message.strip():
        raise ValueError("Alert message is required.")

    conditions = alert.conditions
    required = REQUIRED_THRESHOLDS.get(alert.alertType)
    if required and getattr(conditions, required) is None:
        raise ValueError(f"Missing '{required}' for {alert.alertType} alert.")

    if alert.alertType == "exchange_count":
        if conditions.exchangeCountAbove is None and conditions.exchangeCountBelow is None:
            raise ValueError("exchange_count alert needs 'exchangeCountAbove' or 'exchangeCountBelow'.")
    elif alert.alertType == "new_exchange" and not conditions.newExchangeAlert:
        raise ValueError("new_exchange alert needs 'newExchangeAlert' enabled.")
    elif alert.alertType == "removed_exchange" and not conditions.removedExchangeAlert:
        raise ValueError("removed_exchange alert needs 'removedExchangeAlert' enabled.")
    elif alert.alertType == "trading_status":
        if not conditions.tradingStatus or not conditions.tradingStatus.strip():
            raise ValueError("Missing 'tradingStatus' for trading_status alert.")
    elif alert.alertType == "combined":
        if not conditions.combinedConditions:
            raise ValueError("combined alert needs at least one condition.")
        for condition in conditions.combinedConditions:
            if condition.field not in FIELD_GETTERS:
                raise ValueError(f"Unknown field '{condition.field}' in combined alert.")

def build_alert(definition: AlertDefinition, token_name: str | None = None, now: int | None = None) -> Alert:
    """Turns a validated definition into a fresh, never-triggered alert."""
    now = now if now is not None else now_ms()
    symbol = definition.tokenSymbol.strip().upper()
    return Alert(
        id=uuid.uuid4().hex,
        tokenSymbol=symbol,
        tokenName=definition.tokenName or token_name or symbol,
        alertType=definition.alertType,
        conditions=definition.conditions,
        message=definition.message.strip(),
        isActive=definition.isActive,
        createdAt=now,
        updatedAt=now,
        lastTriggered=None,
        triggerCount=0,
    )

def create_alert(db: Session, definition: AlertDefinition) -> Alert:
    validate_alert(definition)
    token_entry = get_token_by_symbol(db, definition.tokenSymbol.strip())
    alert = build_alert(definition, token_name=token_entry.name if token_entry else None)
    add_alert(db, alert)
    cprint(f"[INFO] Created {alert.alertType} alert {alert.id} for {alert.tokenSymbol}.", "green")
    return alert

def commit_trigger(alert: Alert, now: int) -> TriggerEvent:
    """
    Records a firing on the alert (lastTriggered, triggerCount) and returns the event.
    Only call this for an alert whose check came back as FIRES.
    """
    alert.lastTriggered = now
    alert.triggerCount += 1
    return TriggerEvent(alertId=alert.id, tokenSymbol=alert.tokenSymbol, message=alert.message, timestamp=now)

def run_alert_checks(alerts: list[Alert], tokens: dict[str, Token], prices: dict[str, PriceData],
                     now: int, notifier: Notifier | None = notify_trigger) -> list[TriggerEvent]:
    """
    One evaluation pass. Fired alerts are mutated in place; suppressed and
    unmet alerts are left as they were. Alerts for untracked tokens are skipped.
    """
    events = []
    for alert in alerts:
        token = tokens.get(alert.tokenSymbol)
        if token is None:
            continue
        outcome = check_alert(alert, token, prices.get(alert.tokenSymbol), now)
        if outcome != AlertCheckOutcome.FIRES:
            continue
        event = commit_trigger(alert, now)
        events.append(event)
        if notifier is not None:
            try:
                notifier(event)
            except Exception as e:
                cprint(f"[ERROR] Failed to notify alert {alert.id}: {e}", "red")
    return events

def check_alerts(db: Session, prices: dict[str, PriceData] | None = None,
                 notifier: Notifier | None = notify_trigger, now: int | None = None) -> list[TriggerEvent]:
    """
    Evaluates every active alert against the tracked tokens and the latest
    price snapshots, then persists each firing.
    """
    now = now if now is not None else now_ms()
    prices = prices if prices is not None else get_all_prices()
    tokens = {entry.symbol: to_token(entry) for entry in get_tokens(db)}
    alerts = [to_alert(entry) for entry in get_alerts(db, active_only=True)]
    alerts_by_id = {alert.id: alert for alert in alerts}

    events = run_alert_checks(alerts, tokens, prices, now, notifier)
    for event in events:
        save_alert_trigger(db, alerts_by_id[event.alertId], event)
    if events:
        cprint(f"[INFO] Alert check: {len(events)} of {len(alerts)} active alerts fired.", "green")
    return events
