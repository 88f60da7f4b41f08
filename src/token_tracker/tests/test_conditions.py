import pytest
from pydantic import ValidationError
from src.token_tracker.backend.alerts.alert_models import Alert
from src.token_tracker.backend.alerts.conditions import (
    ALERT_COOLDOWN_MS, AlertCheckOutcome, check_alert, evaluate_alert_conditions, get_field_value,
)
from src.token_tracker.backend.tokens.token_models import PriceData, Token

NOW = 1_700_000_000_000

def make_token(**kwargs):
    data = dict(id="t1", symbol="BTC", name="Bitcoin", exchanges=["mexc", "gateio"], added=0)
    data.update(kwargs)
    return Token(**data)

def make_price(average_price=100.0, change=0.0, **mexc):
    return PriceData(symbol="BTC", timestamp=NOW, averagePrice=average_price, change24h=change,
                     exchanges={"mexc": mexc} if mexc else {})

def make_alert(alert_type, conditions=None, **overrides):
    data = dict(id="a1", tokenSymbol="BTC", tokenName="Bitcoin", alertType=alert_type,
                conditions=conditions or {}, message="BTC alert", createdAt=0, updatedAt=0)
    data.update(overrides)
    return Alert(**data)

def holds(alert, token=None, price=None):
    return evaluate_alert_conditions(alert, token or make_token(), price)

# --- Model ---

def test_conditions_of_another_type_are_rejected():
    with pytest.raises(ValidationError):
        make_alert("price_above", {"priceAbove": 100, "volumeAbove": 5})

def test_unknown_alert_type_is_rejected():
    with pytest.raises(ValidationError):
        make_alert("moon_soon", {})

# --- Price ---

def test_price_above_is_strict():
    alert = make_alert("price_above", {"priceAbove": 100})
    assert holds(alert, price=make_price(101))
    assert not holds(alert, price=make_price(99))
    assert not holds(alert, price=make_price(100))

def test_price_alerts_need_a_price():
    assert not holds(make_alert("price_above", {"priceAbove": 100}), price=None)
    assert not holds(make_alert("price_below", {"priceBelow": 100}), price=None)

def test_missing_threshold_never_holds():
    assert not holds(make_alert("price_above", {}), price=make_price(1_000_000))

def test_price_below():
    alert = make_alert("price_below", {"priceBelow": 100})
    assert holds(alert, price=make_price(99.99))
    assert not holds(alert, price=make_price(100))

def test_price_change_directions():
    positive = make_alert("price_change", {"priceChangePercent": 5, "priceChangeDirection": "positive"})
    negative = make_alert("price_change", {"priceChangePercent": 5, "priceChangeDirection": "negative"})
    either = make_alert("price_change", {"priceChangePercent": 5, "priceChangeDirection": "any"})
    assert holds(positive, price=make_price(change=5))
    assert not holds(positive, price=make_price(change=-7))
    assert holds(negative, price=make_price(change=-7))
    assert not holds(negative, price=make_price(change=-4))
    assert holds(either, price=make_price(change=-7))
    assert holds(either, price=make_price(change=6))

# --- Volume ---

def test_volume_thresholds_use_mexc_volume():
    above = make_alert("volume_above", {"volumeAbove": 1000})
    below = make_alert("volume_below", {"volumeBelow": 1000})
    assert holds(above, price=make_price(volume24h=1500))
    assert not holds(above, price=make_price(volume24h=1000))
    assert holds(below, price=make_price(volume24h=500))
    assert not holds(below, price=make_price())

# --- Exchanges ---

def test_exchange_count_bounds():
    token = make_token(exchangeData={"totalExchanges": 5})
    assert holds(make_alert("exchange_count", {"exchangeCountAbove": 4}), token)
    assert not holds(make_alert("exchange_count", {"exchangeCountAbove": 5}), token)
    assert holds(make_alert("exchange_count", {"exchangeCountBelow": 6}), token)
    assert not holds(make_alert("exchange_count", {"exchangeCountAbove": 2, "exchangeCountBelow": 5}), token)

def test_exchange_count_falls_back_to_registered_exchanges():
    assert holds(make_alert("exchange_count", {"exchangeCountAbove": 1}), make_token())

def test_exchange_count_keeps_a_scraped_zero():
    token = make_token(exchangeData={"totalExchanges": 0})
    assert holds(make_alert("exchange_count", {"exchangeCountBelow": 1}), token)

def test_exchange_listing_changes():
    token = make_token(exchangeData={"totalExchanges": 3, "newExchanges24h": ["OKX"], "removedExchanges24h": []})
    assert holds(make_alert("new_exchange", {"newExchangeAlert": True}), token)
    assert not holds(make_alert("new_exchange", {"newExchangeAlert": False}), token)
    assert not holds(make_alert("removed_exchange", {"removedExchangeAlert": True}), token)
    assert not holds(make_alert("new_exchange", {"newExchangeAlert": True}), make_token())

# --- ATH ---

def test_ath_distance():
    token = make_token(allTimeHigh=100)
    closer = make_alert("ath_distance", {"athDistancePercent": 10, "athDistanceDirection": "closer"})
    further = make_alert("ath_distance", {"athDistancePercent": 10, "athDistanceDirection": "further"})
    assert holds(closer, token, make_price(95))
    assert not holds(further, token, make_price(95))
    assert holds(further, token, make_price(50))
    assert not holds(closer, make_token(), make_price(95))

def test_percent_from_ath_below():
    alert = make_alert("percent_from_ath", {"percentFromAthThreshold": 80, "percentFromAthDirection": "below"})
    token = make_token(allTimeHigh=100)
    assert holds(alert, token, make_price(15))
    assert not holds(alert, token, make_price(25))

def test_percent_from_ath_above():
    alert = make_alert("percent_from_ath", {"percentFromAthThreshold": 10, "percentFromAthDirection": "above"})
    token = make_token(allTimeHigh=100)
    assert holds(alert, token, make_price(120))
    assert not holds(alert, token, make_price(105))

def test_zero_ath_never_holds():
    alert = make_alert("ath_distance", {"athDistancePercent": 10})
    assert not holds(alert, make_token(allTimeHigh=0), make_price(5))

# --- Trading status ---

def test_trading_status_is_exact():
    alert = make_alert("trading_status", {"tradingStatus": "ENABLED"})
    assert holds(alert, price=make_price(status="ENABLED"))
    assert not holds(alert, price=make_price(status="enabled"))
    assert not holds(alert, price=make_price())

# --- Combined ---

def test_combined_logic_comes_from_previous_condition():
    alert = make_alert("combined", {"combinedConditions": [
        {"field": "price", "operator": "above", "value": 100, "logic": "or"},
        {"field": "change24h", "operator": "above", "value": 5, "logic": "and"},
    ]})
    assert holds(alert, price=make_price(150, change=0))
    assert holds(alert, price=make_price(50, change=10))
    assert not holds(alert, price=make_price(50, change=0))

def test_combined_defaults_to_and():
    alert = make_alert("combined", {"combinedConditions": [
        {"field": "price", "operator": "above", "value": 100},
        {"field": "change24h", "operator": "below", "value": 0},
    ]})
    assert holds(alert, price=make_price(150, change=-1))
    assert not holds(alert, price=make_price(150, change=1))

def test_combined_fold_is_left_to_right():
    # (false or true) and false
    alert = make_alert("combined", {"combinedConditions": [
        {"field": "price", "operator": "below", "value": 10, "logic": "or"},
        {"field": "ath", "operator": "above", "value": 50, "logic": "and"},
        {"field": "exchangeCount", "operator": "above", "value": 5},
    ]})
    assert not holds(alert, make_token(allTimeHigh=100), make_price(100))
    assert holds(alert, make_token(allTimeHigh=100, exchangeData={"totalExchanges": 9}), make_price(100))

def test_combined_operators():
    price = make_price(100.0, status="ENABLED", count=42)
    token = make_token()
    def single(field, operator, value):
        return make_alert("combined", {"combinedConditions": [{"field": field, "operator": operator, "value": value}]})
    assert holds(single("price", "equals", "100"), token, price)
    assert holds(single("tradingStatus", "contains", "enab"), token, price)
    assert holds(single("tradeCount", "above", "40"), token, price)
    assert not holds(single("tradingStatus", "above", 1), token, price)
    assert not holds(single("price", "above", "lots"), token, price)
    assert not holds(single("bidPrice", "below", 1000), token, price)
    assert not holds(single("marketCap", "above", 0), token, price)

def test_empty_combined_never_holds():
    assert not holds(make_alert("combined", {"combinedConditions": []}), price=make_price())

def test_field_lookup():
    token = make_token(allTimeLow=3.5)
    price = make_price(bidPrice=99.5, askPrice=100.5, high24h=110)
    assert get_field_value("atl", token, price) == 3.5
    assert get_field_value("askPrice", token, price) == 100.5
    assert get_field_value("high24h", token, price) == 110
    assert get_field_value("exchangeCount", token, price) == 2
    assert get_field_value("volume24h", token, None) is None

# --- Cooldown ---

def test_cooldown_outcomes():
    token, price = make_token(), make_price(150)
    conditions = {"priceAbove": 100}
    fresh = make_alert("price_above", conditions)
    recent = make_alert("price_above", conditions, lastTriggered=NOW - 100000)
    boundary = make_alert("price_above", conditions, lastTriggered=NOW - ALERT_COOLDOWN_MS)
    old = make_alert("price_above", conditions, lastTriggered=NOW - 400000)
    assert check_alert(fresh, token, price, NOW) == AlertCheckOutcome.FIRES
    assert check_alert(recent, token, price, NOW) == AlertCheckOutcome.SUPPRESSED
    assert check_alert(boundary, token, price, NOW) == AlertCheckOutcome.SUPPRESSED
    assert check_alert(old, token, price, NOW) == AlertCheckOutcome.FIRES

def test_inactive_and_unmet_alerts():
    token = make_token()
    inactive = make_alert("price_above", {"priceAbove": 100}, isActive=False)
    assert check_alert(inactive, token, make_price(150), NOW) == AlertCheckOutcome.SKIPPED
    active = make_alert("price_above", {"priceAbove": 100})
    assert check_alert(active, token, make_price(50), NOW) == AlertCheckOutcome.NOT_MET

def test_check_alert_does_not_mutate():
    alert = make_alert("price_above", {"priceAbove": 100}, lastTriggered=NOW - 400000, triggerCount=3)
    first = check_alert(alert, make_token(), make_price(150), NOW)
    second = check_alert(alert, make_token(), make_price(150), NOW)
    assert first == second == AlertCheckOutcome.FIRES
    assert alert.lastTriggered == NOW - 400000
    assert alert.triggerCount == 3
