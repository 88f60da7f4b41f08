from fastapi import Body, Depends, FastAPI, HTTPException
from sqlalchemy.orm import Session
from termcolor import cprint

from src.token_tracker.backend.database.db import init_db, get_db
from src.token_tracker.backend.database import operations as ops
from src.token_tracker.backend.alerts.alert_handler import check_alerts, create_alert
from src.token_tracker.backend.alerts.alert_models import Alert, AlertCreate, AlertUpdate, TriggerEvent
from src.token_tracker.backend.prices import price_cache
from src.token_tracker.backend.query.filters import TokenFilters, filter_tokens
from src.token_tracker.backend.query.search import filter_tokens_by_query
from src.token_tracker.backend.scheduler.alert_checks import create_scheduler, request_immediate_check
from src.token_tracker.backend.tokens.token_models import (
    AthAtlUpdate, DeletedToken, ExchangeData, PriceData, Token, TokenCreate, TokenDelete,
)
from src.token_tracker.config import ALERT_CHECK_INTERVAL_SECONDS, API_HOST, API_PORT

# Create FastAPI app instance
app = FastAPI(title="Token Tracker API", version="1.0")

@app.on_event("startup")
def startup_event():
    # Initialize the database (creates tables if they don't exist)
    init_db()
    cprint("[INFO] Database initialized.", "green")

    # Start the periodic alert check
    scheduler = create_scheduler()
    scheduler.start()
    app.state.scheduler = scheduler
    cprint(f"[INFO] Scheduler started for alert checks (every {ALERT_CHECK_INTERVAL_SECONDS} seconds).", "green")

@app.on_event("shutdown")
def shutdown_event():
    if hasattr(app.state, "scheduler"):
        app.state.scheduler.shutdown()
        cprint("[INFO] Scheduler shutdown.", "yellow")

def _bad_request(e: Exception):
    cprint(f"[ERROR] Validation failed: {e}", "red")
    return HTTPException(status_code=400, detail=str(e))

def _not_found(e: Exception):
    cprint(f"[WARN] {e}", "yellow")
    return HTTPException(status_code=404, detail=str(e))

@app.get("/health")
def health():
    return {"status": "ok"}

# --- Tokens ---

@app.get("/tokens", response_model=list[Token])
def list_tokens(db: Session = Depends(get_db)):
    return [ops.to_token(entry) for entry in ops.get_tokens(db)]

@app.post("/tokens", status_code=201, response_model=Token)
def add_token(payload: TokenCreate, db: Session = Depends(get_db)):
    try:
        entry = ops.add_token(db, payload.symbol, payload.name, payload.exchanges)
    except ValueError as ve:
        raise _bad_request(ve)
    return ops.to_token(entry)

@app.get("/tokens/deleted", response_model=list[DeletedToken])
def list_deleted_tokens(db: Session = Depends(get_db)):
    return [ops.to_deleted_token(entry) for entry in ops.get_deleted_tokens(db)]

@app.post("/tokens/deleted/{deleted_id}/restore", status_code=201, response_model=Token)
def restore_token(deleted_id: str, db: Session = Depends(get_db)):
    try:
        entry = ops.restore_token(db, deleted_id)
    except LookupError as le:
        raise _not_found(le)
    except ValueError as ve:
        raise _bad_request(ve)
    cprint(f"[INFO] Restored {entry.symbol} as {entry.id}.", "green")
    return ops.to_token(entry)

@app.get("/tokens/search", response_model=list[Token])
def search_tokens(q: str = "", db: Session = Depends(get_db)):
    tokens = [ops.to_token(entry) for entry in ops.get_tokens(db)]
    return filter_tokens_by_query(tokens, price_cache.get_all_prices(), q)

@app.post("/tokens/filter", response_model=list[Token])
def filter_token_table(filters: TokenFilters, db: Session = Depends(get_db)):
    tokens = [ops.to_token(entry) for entry in ops.get_tokens(db)]
    return filter_tokens(tokens, price_cache.get_all_prices(), filters)

@app.delete("/tokens/{token_id}", response_model=DeletedToken)
def delete_token(token_id: str, payload: TokenDelete = Body(...), db: Session = Depends(get_db)):
    try:
        record = ops.delete_token(db, token_id, payload.reason, payload.deletedBy)
    except ValueError as ve:
        raise _bad_request(ve)
    except LookupError as le:
        raise _not_found(le)
    return ops.to_deleted_token(record)

@app.put("/tokens/{symbol}/exchange-data", response_model=Token)
def update_exchange_data(symbol: str, payload: ExchangeData, db: Session = Depends(get_db)):
    try:
        entry = ops.update_token_exchange_data(db, symbol, payload)
    except LookupError as le:
        raise _not_found(le)
    return ops.to_token(entry)

@app.put("/tokens/{symbol}/ath-atl", response_model=Token)
def update_ath_atl(symbol: str, payload: AthAtlUpdate, db: Session = Depends(get_db)):
    try:
        entry = ops.update_token_ath_atl(db, symbol, payload.allTimeHigh, payload.allTimeLow, payload.athLastUpdated)
    except LookupError as le:
        raise _not_found(le)
    return ops.to_token(entry)

# --- Prices ---

@app.put("/prices/{symbol}", response_model=PriceData)
def receive_price(symbol: str, payload: PriceData):
    if payload.symbol.upper() != symbol.upper():
        raise _bad_request(ValueError(f"Snapshot symbol {payload.symbol} does not match {symbol}"))
    return price_cache.set_price_data(payload)

@app.get("/prices", response_model=dict[str, PriceData])
def list_prices():
    return price_cache.get_all_prices()

# --- Alerts ---

@app.get("/alerts", response_model=list[Alert])
def list_alerts(symbol: str | None = None, db: Session = Depends(get_db)):
    return [ops.to_alert(entry) for entry in ops.get_alerts(db, symbol=symbol)]

@app.post("/alerts", status_code=201, response_model=Alert)
def receive_alert(alert: AlertCreate, db: Session = Depends(get_db)):
    cprint(f"[INFO] Received {alert.alertType} alert for ticker: {alert.tokenSymbol}", "blue")
    try:
        return create_alert(db, alert)
    except ValueError as ve:
        raise _bad_request(ve)

@app.patch("/alerts/{alert_id}", response_model=Alert)
def update_alert(alert_id: str, payload: AlertUpdate, db: Session = Depends(get_db)):
    try:
        entry = ops.update_alert(db, alert_id, is_active=payload.isActive, message=payload.message)
    except LookupError as le:
        raise _not_found(le)
    except ValueError as ve:
        raise _bad_request(ve)
    return ops.to_alert(entry)

@app.delete("/alerts/{alert_id}")
def delete_alert(alert_id: str, db: Session = Depends(get_db)):
    if not ops.delete_alert(db, alert_id):
        raise _not_found(LookupError(f"Alert {alert_id} not found"))
    return {"status": "success", "message": "Alert deleted"}

@app.post("/alerts/check")
def run_alert_check(db: Session = Depends(get_db)):
    # With the scheduler running, pull its next pass forward so passes never overlap
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        request_immediate_check(scheduler)
        return {"status": "scheduled", "events": []}
    events = check_alerts(db)
    return {"status": "completed", "events": [event.model_dump() for event in events]}

@app.get("/alerts/{alert_id}/events", response_model=list[TriggerEvent])
def list_trigger_events(alert_id: str, db: Session = Depends(get_db)):
    if ops.get_alert(db, alert_id) is None:
        raise _not_found(LookupError(f"Alert {alert_id} not found"))
    return [ops.to_trigger_event(entry) for entry in ops.get_trigger_events(db, alert_id)]

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.token_tracker.backend.app:app", host=API_HOST, port=API_PORT, reload=True)
