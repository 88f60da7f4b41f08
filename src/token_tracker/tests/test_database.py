import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from src.token_tracker.backend.alerts.alert_handler import check_alerts, create_alert
from src.token_tracker.backend.alerts.alert_models import AlertCreate
from src.token_tracker.backend.database.models import Base
from src.token_tracker.backend.database.operations import (
    add_token, delete_alert, delete_token, get_alert, get_alerts, get_deleted_tokens, get_token_by_symbol,
    get_trigger_events, restore_token, to_alert, to_token, update_alert, update_token_ath_atl,
    update_token_exchange_data,
)
from src.token_tracker.backend.tokens.token_models import ExchangeData, PriceData

NOW = 1_700_000_000_000

# Use an in-memory SQLite database for tests
@pytest.fixture(scope="function")
def db_session():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()

def test_add_token(db_session):
    entry = add_token(db_session, " btc ", "Bitcoin", ["mexc", "gateio"])
    assert entry.symbol == "BTC"
    assert entry.name == "Bitcoin"
    assert entry.exchanges == ["mexc", "gateio"]
    assert entry.id
    assert entry.all_time_high is None

def test_add_token_rejects_duplicates_and_blank_symbols(db_session):
    add_token(db_session, "ETH", "Ethereum")
    with pytest.raises(ValueError):
        add_token(db_session, "eth", "Ethereum again")
    with pytest.raises(ValueError):
        add_token(db_session, "  ")

def test_delete_token_requires_reason(db_session):
    entry = add_token(db_session, "DOGE", "Dogecoin")
    with pytest.raises(ValueError):
        delete_token(db_session, entry.id, "   ")
    assert get_token_by_symbol(db_session, "DOGE") is not None

def test_delete_unknown_token(db_session):
    with pytest.raises(LookupError):
        delete_token(db_session, "missing", "typo")

def test_delete_token_writes_audit_record(db_session):
    entry = add_token(db_session, "DOGE", "Dogecoin", ["mexc"])
    token_id, added = entry.id, entry.added
    record = delete_token(db_session, token_id, " listed by mistake ", "ops")
    assert record.id == token_id
    assert record.deletion_reason == "listed by mistake"
    assert record.deleted_by == "ops"
    assert record.date_added == added
    assert get_token_by_symbol(db_session, "DOGE") is None
    assert [r.id for r in get_deleted_tokens(db_session)] == [token_id]

def test_restore_token_allocates_new_id(db_session):
    entry = add_token(db_session, "DOGE", "Dogecoin", ["mexc"])
    old_id = entry.id
    delete_token(db_session, old_id, "mistake")
    restored = restore_token(db_session, old_id)
    assert restored.id != old_id
    assert restored.symbol == "DOGE"
    assert restored.exchanges == ["mexc"]
    # audit record stays, and the symbol cannot be restored twice
    assert len(get_deleted_tokens(db_session)) == 1
    with pytest.raises(ValueError):
        restore_token(db_session, old_id)

def test_update_exchange_data_and_ath(db_session):
    add_token(db_session, "BTC", "Bitcoin", ["mexc"])
    update_token_exchange_data(db_session, "btc", ExchangeData(totalExchanges=15, exchanges=["Binance"], newExchanges24h=["Gemini"]))
    update_token_ath_atl(db_session, "BTC", 69000, 15500, 123)
    token = to_token(get_token_by_symbol(db_session, "BTC"))
    assert token.exchange_count() == 15
    assert token.exchangeData.newExchanges24h == ["Gemini"]
    assert token.allTimeHigh == 69000
    assert token.athLastUpdated == 123
    with pytest.raises(LookupError):
        update_token_ath_atl(db_session, "NOPE", 1, 1)

def test_alert_conditions_survive_storage(db_session):
    add_token(db_session, "BTC", "Bitcoin")
    created = create_alert(db_session, AlertCreate(
        tokenSymbol="BTC",
        alertType="combined",
        conditions={"combinedConditions": [
            {"field": "price", "operator": "above", "value": 100, "logic": "or"},
            {"field": "tradingStatus", "operator": "equals", "value": "ENABLED"},
        ]},
        message="BTC moving",
    ))
    stored = to_alert(get_alert(db_session, created.id))
    assert stored == created
    assert stored.tokenName == "Bitcoin"

def test_update_and_delete_alert(db_session):
    alert = create_alert(db_session, AlertCreate(tokenSymbol="BTC", alertType="price_below",
                                                 conditions={"priceBelow": 10}, message="dip"))
    entry = update_alert(db_session, alert.id, is_active=False)
    assert entry.is_active is False
    assert get_alerts(db_session, active_only=True) == []
    with pytest.raises(ValueError):
        update_alert(db_session, alert.id, message=" ")
    with pytest.raises(LookupError):
        update_alert(db_session, "missing", is_active=True)
    assert delete_alert(db_session, alert.id)
    assert not delete_alert(db_session, alert.id)

def test_check_alerts_persists_firings(db_session):
    add_token(db_session, "BTC", "Bitcoin", ["mexc"])
    alert = create_alert(db_session, AlertCreate(tokenSymbol="BTC", alertType="price_above",
                                                 conditions={"priceAbove": 100}, message="BTC above 100"))
    prices = {"BTC": PriceData(symbol="BTC", averagePrice=150.0, change24h=3.0, exchanges={"mexc": {"price": 150.0}})}

    events = check_alerts(db_session, prices, notifier=None, now=NOW)
    assert [e.alertId for e in events] == [alert.id]

    # within cooldown: no second firing
    assert check_alerts(db_session, prices, notifier=None, now=NOW + 100000) == []
    # cooldown over
    assert len(check_alerts(db_session, prices, notifier=None, now=NOW + 400000)) == 1

    stored = to_alert(get_alert(db_session, alert.id))
    assert stored.lastTriggered == NOW + 400000
    assert stored.triggerCount == 2
    assert [e.timestamp for e in get_trigger_events(db_session, alert.id)] == [NOW + 400000, NOW]
