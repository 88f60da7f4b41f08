import time
import uuid
from sqlalchemy.orm import Session
from .models import AlertEntry, DeletedTokenEntry, TokenEntry, TriggerEventEntry
from termcolor import cprint
from src.token_tracker.backend.alerts.alert_models import Alert, TriggerEvent
from src.token_tracker.backend.tokens.token_models import DeletedToken, ExchangeData, Token

def now_ms() -> int:
    return int(time.time() * 1000)

# --- Row <-> model conversion ---

def to_token(entry: TokenEntry) -> Token:
    return Token(
        id=entry.id,
        symbol=entry.symbol,
        name=entry.name,
        exchanges=entry.exchanges or [],
        added=entry.added,
        allTimeHigh=entry.all_time_high,
        allTimeLow=entry.all_time_low,
        athLastUpdated=entry.ath_last_updated,
        exchangeData=entry.exchange_data,
    )

def to_deleted_token(entry: DeletedTokenEntry) -> DeletedToken:
    return DeletedToken(
        id=entry.id,
        symbol=entry.symbol,
        name=entry.name,
        exchanges=entry.exchanges or [],
        dateAdded=entry.date_added,
        dateDeleted=entry.date_deleted,
        deletionReason=entry.deletion_reason,
        deletedBy=entry.deleted_by,
    )

def to_alert(entry: AlertEntry) -> Alert:
    return Alert(
        id=entry.id,
        tokenSymbol=entry.token_symbol,
        tokenName=entry.token_name,
        alertType=entry.alert_type,
        conditions=entry.conditions or {},
        message=entry.message,
        isActive=entry.is_active,
        createdAt=entry.created_at,
        updatedAt=entry.updated_at,
        lastTriggered=entry.last_triggered,
        triggerCount=entry.trigger_count,
    )

def to_trigger_event(entry: TriggerEventEntry) -> TriggerEvent:
    return TriggerEvent(
        alertId=entry.alert_id,
        tokenSymbol=entry.token_symbol,
        message=entry.message,
        timestamp=entry.timestamp,
    )

# --- Tokens ---

def get_tokens(db: Session) -> list[TokenEntry]:
    return db.query(TokenEntry).order_by(TokenEntry.added).all()

def get_token_by_id(db: Session, token_id: str) -> TokenEntry:
    """
    Returns the token with the given id, or None if not found.
    """
    return db.query(TokenEntry).filter(TokenEntry.id == token_id).first()

def get_token_by_symbol(db: Session, symbol: str) -> TokenEntry:
    """
    Returns the active token for a given symbol, or None if not found.
    """
    return db.query(TokenEntry).filter(TokenEntry.symbol == symbol.upper()).first()

def add_token(db: Session, symbol: str, name: str | None = None,
              exchanges: list[str] | None = None) -> TokenEntry:
    """
    Creates a new tracked token. The symbol is upper-cased and must not already be tracked.
    Every token gets a fresh id, even when the symbol was tracked and deleted before.
    """
    symbol = (symbol or "").strip().upper()
    if not symbol:
        raise ValueError("Token symbol is required")
    if get_token_by_symbol(db, symbol):
        raise ValueError(f"Token {symbol} is already tracked")

    new_entry = TokenEntry(
        id=uuid.uuid4().hex,
        symbol=symbol,
        name=(name or "").strip() or symbol,
        exchanges=list(exchanges or []),
        added=now_ms(),
    )
    db.add(new_entry)
    db.commit()
    db.refresh(new_entry)
    cprint(f"Added token {symbol} ({new_entry.id}).", "green")
    return new_entry

def delete_token(db: Session, token_id: str, reason: str, deleted_by: str | None = None) -> DeletedTokenEntry:
    """
    Removes a token and writes its audit record. A non-empty reason is required.
    """
    if not reason or not reason.strip():
        raise ValueError("Deletion reason is required")
    entry = get_token_by_id(db, token_id)
    if entry is None:
        raise LookupError(f"Token {token_id} not found")

    record = DeletedTokenEntry(
        id=entry.id,
        symbol=entry.symbol,
        name=entry.name,
        exchanges=list(entry.exchanges or []),
        date_added=entry.added,
        date_deleted=now_ms(),
        deletion_reason=reason.strip(),
        deleted_by=deleted_by or "unknown",
    )
    db.add(record)
    db.delete(entry)
    db.commit()
    db.refresh(record)
    cprint(f"Deleted token {record.symbol} ({record.id}): {record.deletion_reason}", "yellow")
    return record

def get_deleted_tokens(db: Session) -> list[DeletedTokenEntry]:
    return db.query(DeletedTokenEntry).order_by(DeletedTokenEntry.date_deleted.desc()).all()

def restore_token(db: Session, deleted_id: str) -> TokenEntry:
    """
    Re-adds a deleted token under a new id. The audit record is left untouched.
    """
    record = db.query(DeletedTokenEntry).filter(DeletedTokenEntry.id == deleted_id).first()
    if record is None:
        raise LookupError(f"Deleted token {deleted_id} not found")
    return add_token(db, record.symbol, record.name, record.exchanges)

def update_token_exchange_data(db: Session, symbol: str, exchange_data: ExchangeData) -> TokenEntry:
    entry = get_token_by_symbol(db, symbol)
    if entry is None:
        raise LookupError(f"Token {symbol} not found")
    entry.exchange_data = exchange_data.model_dump()
    db.commit()
    db.refresh(entry)
    return entry

def update_token_ath_atl(db: Session, symbol: str, ath: float | None, atl: float | None,
                         ath_last_updated: int | None = None) -> TokenEntry:
    entry = get_token_by_symbol(db, symbol)
    if entry is None:
        raise LookupError(f"Token {symbol} not found")
    entry.all_time_high = ath
    entry.all_time_low = atl
    entry.ath_last_updated = ath_last_updated or now_ms()
    db.commit()
    db.refresh(entry)
    return entry

# --- Alerts ---

def add_alert(db: Session, alert: Alert) -> AlertEntry:
    new_entry = AlertEntry(
        id=alert.id,
        token_symbol=alert.tokenSymbol,
        token_name=alert.tokenName,
        alert_type=alert.alertType,
        conditions=alert.conditions.model_dump(exclude={"alertType"}),
        message=alert.message,
        is_active=alert.isActive,
        created_at=alert.createdAt,
        updated_at=alert.updatedAt,
        last_triggered=alert.lastTriggered,
        trigger_count=alert.triggerCount,
    )
    db.add(new_entry)
    db.commit()
    db.refresh(new_entry)
    return new_entry

def get_alerts(db: Session, symbol: str | None = None, active_only: bool = False) -> list[AlertEntry]:
    query = db.query(AlertEntry)
    if symbol:
        query = query.filter(AlertEntry.token_symbol == symbol.upper())
    if active_only:
        query = query.filter(AlertEntry.is_active.is_(True))
    return query.order_by(AlertEntry.created_at.desc()).all()

def get_alert(db: Session, alert_id: str) -> AlertEntry:
    return db.query(AlertEntry).filter(AlertEntry.id == alert_id).first()

def update_alert(db: Session, alert_id: str, is_active: bool | None = None,
                 message: str | None = None) -> AlertEntry:
    """
    Toggles an alert on/off and/or changes its message.
    """
    entry = get_alert(db, alert_id)
    if entry is None:
        raise LookupError(f"Alert {alert_id} not found")
    if message is not None:
        if not message.strip():
            raise ValueError("Alert message is required")
        entry.message = message.strip()
    if is_active is not None:
        entry.is_active = is_active
    entry.updated_at = now_ms()
    db.commit()
    db.refresh(entry)
    return entry

def delete_alert(db: Session, alert_id: str) -> bool:
    deleted = db.query(AlertEntry).filter(AlertEntry.id == alert_id).delete()
    db.commit()
    return deleted > 0

def save_alert_trigger(db: Session, alert: Alert, event: TriggerEvent) -> AlertEntry:
    """
    Persists the bookkeeping of a fired alert along with its trigger event.
    """
    entry = get_alert(db, alert.id)
    if entry is None:
        raise LookupError(f"Alert {alert.id} not found")
    entry.last_triggered = alert.lastTriggered
    entry.trigger_count = alert.triggerCount
    db.add(TriggerEventEntry(
        alert_id=event.alertId,
        token_symbol=event.tokenSymbol,
        message=event.message,
        timestamp=event.timestamp,
    ))
    db.commit()
    db.refresh(entry)
    return entry

def get_trigger_events(db: Session, alert_id: str, limit: int = 50) -> list[TriggerEventEntry]:
    return (
        db.query(TriggerEventEntry)
        .filter(TriggerEventEntry.alert_id == alert_id)
        .order_by(TriggerEventEntry.timestamp.desc(), TriggerEventEntry.id.desc())
        .limit(limit)
        .all()
    )
