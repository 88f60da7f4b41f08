"""
Alert condition evaluation.

Everything here is a pure function of (alert, token, price snapshot, now).
Missing data never raises: a condition whose inputs are absent simply does
not hold. Committing a firing (lastTriggered / triggerCount) is left to the
caller, see alert_handler.commit_trigger.
"""
from enum import Enum
from src.token_tracker.backend.alerts.alert_models import Alert, CombinedCondition
from src.token_tracker.backend.query.values import as_number, as_text, is_numeric
from src.token_tracker.backend.tokens.token_models import PriceData, Token

ALERT_COOLDOWN_MS = 300000  # 5 minutes


class AlertCheckOutcome(str, Enum):
    SKIPPED = "skipped"        # inactive alert, never evaluated
    NOT_MET = "not_met"
    SUPPRESSED = "suppressed"  # condition holds but the alert is cooling down
    FIRES = "fires"


def _price(price_data: PriceData | None):
    return price_data.averagePrice if price_data is not None else None


def _change(price_data: PriceData | None):
    return price_data.change24h if price_data is not None else None


def _mexc(price_data: PriceData | None, name: str):
    if price_data is None or price_data.mexc is None:
        return None
    return getattr(price_data.mexc, name)


FIELD_GETTERS = {
    "price": lambda token, price_data: _price(price_data),
    "change24h": lambda token, price_data: _change(price_data),
    "volume24h": lambda token, price_data: _mexc(price_data, "volume24h"),
    "high24h": lambda token, price_data: _mexc(price_data, "high24h"),
    "low24h": lambda token, price_data: _mexc(price_data, "low24h"),
    "tradeCount": lambda token, price_data: _mexc(price_data, "count"),
    "ath": lambda token, price_data: token.allTimeHigh,
    "atl": lambda token, price_data: token.allTimeLow,
    "exchangeCount": lambda token, price_data: token.exchange_count(),
    "tradingStatus": lambda token, price_data: _mexc(price_data, "status"),
    "bidPrice": lambda token, price_data: _mexc(price_data, "bidPrice"),
    "askPrice": lambda token, price_data: _mexc(price_data, "askPrice"),
}


def get_field_value(field: str, token: Token, price_data: PriceData | None):
    getter = FIELD_GETTERS.get(field)
    if getter is None:
        return None
    return getter(token, price_data)


def evaluate_combined_condition(condition: CombinedCondition, token: Token, price_data: PriceData | None) -> bool:
    value = get_field_value(condition.field, token, price_data)
    if value is None:
        return False

    if condition.operator in ("above", "below"):
        threshold = as_number(condition.value)
        if not is_numeric(value) or threshold is None:
            return False
        return value > threshold if condition.operator == "above" else value < threshold
    if condition.operator == "equals":
        return as_text(value) == as_text(condition.value)
    if condition.operator == "contains":
        return as_text(condition.value).lower() in as_text(value).lower()
    return False


def evaluate_combined_conditions(conditions: list[CombinedCondition], token: Token, price_data: PriceData | None) -> bool:
    """
    Folds sub-conditions left to right. The logic stored on condition i-1
    joins it with condition i; every sub-condition is evaluated.
    """
    if not conditions:
        return False

    results = [evaluate_combined_condition(condition, token, price_data) for condition in conditions]

    final_result = results[0]
    for i in range(1, len(results)):
        logic = conditions[i - 1].logic or "and"
        if logic == "and":
            final_result = final_result and results[i]
        else:
            final_result = final_result or results[i]
    return final_result


def _price_above(c, token, price_data):
    price = _price(price_data)
    return c.priceAbove is not None and price is not None and price > c.priceAbove


def _price_below(c, token, price_data):
    price = _price(price_data)
    return c.priceBelow is not None and price is not None and price < c.priceBelow


def _price_change(c, token, price_data):
    change = _change(price_data)
    if c.priceChangePercent is None or change is None:
        return False
    direction_match = (
        c.priceChangeDirection == "any"
        or (c.priceChangeDirection == "positive" and change > 0)
        or (c.priceChangeDirection == "negative" and change < 0)
    )
    return abs(change) >= c.priceChangePercent and direction_match


def _volume_above(c, token, price_data):
    volume = _mexc(price_data, "volume24h")
    return c.volumeAbove is not None and volume is not None and volume > c.volumeAbove


def _volume_below(c, token, price_data):
    volume = _mexc(price_data, "volume24h")
    return c.volumeBelow is not None and volume is not None and volume < c.volumeBelow


def _exchange_count(c, token, price_data):
    count = token.exchange_count()
    if c.exchangeCountAbove is not None and count <= c.exchangeCountAbove:
        return False
    if c.exchangeCountBelow is not None and count >= c.exchangeCountBelow:
        return False
    return True


def _new_exchange(c, token, price_data):
    return c.newExchangeAlert and token.exchangeData is not None and len(token.exchangeData.newExchanges24h) > 0


def _removed_exchange(c, token, price_data):
    return (
        c.removedExchangeAlert
        and token.exchangeData is not None
        and len(token.exchangeData.removedExchanges24h) > 0
    )


def _percent_from_ath(token: Token, price_data: PriceData | None) -> float | None:
    price = _price(price_data)
    ath = token.allTimeHigh
    # ATH of 0 has no meaningful percentage
    if price is None or not ath:
        return None
    return (price - ath) / ath * 100


def _ath_distance(c, token, price_data):
    percent = _percent_from_ath(token, price_data)
    if c.athDistancePercent is None or percent is None:
        return False
    distance = abs(percent)
    if c.athDistanceDirection == "closer":
        return distance <= c.athDistancePercent
    return distance >= c.athDistancePercent


def _percent_from_ath_threshold(c, token, price_data):
    percent = _percent_from_ath(token, price_data)
    if c.percentFromAthThreshold is None or percent is None:
        return False
    if c.percentFromAthDirection == "below":
        return percent <= -abs(c.percentFromAthThreshold)
    return percent >= c.percentFromAthThreshold


def _trading_status(c, token, price_data):
    return c.tradingStatus is not None and _mexc(price_data, "status") == c.tradingStatus


def _combined(c, token, price_data):
    return evaluate_combined_conditions(c.combinedConditions, token, price_data)


EVALUATORS = {
    "price_above": _price_above,
    "price_below": _price_below,
    "price_change": _price_change,
    "volume_above": _volume_above,
    "volume_below": _volume_below,
    "exchange_count": _exchange_count,
    "new_exchange": _new_exchange,
    "removed_exchange": _removed_exchange,
    "ath_distance": _ath_distance,
    "percent_from_ath": _percent_from_ath_threshold,
    "trading_status": _trading_status,
    "combined": _combined,
}


def evaluate_alert_conditions(alert: Alert, token: Token, price_data: PriceData | None = None) -> bool:
    """
    Returns True when the alert's trigger condition currently holds.

    Price-based alert types need a snapshot; exchange-listing types only read the token.
    """
    evaluator = EVALUATORS.get(alert.alertType)
    if evaluator is None:
        return False
    return bool(evaluator(alert.conditions, token, price_data))


def cooldown_elapsed(alert: Alert, now: int) -> bool:
    return alert.lastTriggered is None or now - alert.lastTriggered > ALERT_COOLDOWN_MS


def check_alert(alert: Alert, token: Token, price_data: PriceData | None, now: int) -> AlertCheckOutcome:
    if not alert.isActive:
        return AlertCheckOutcome.SKIPPED
    if not evaluate_alert_conditions(alert, token, price_data):
        return AlertCheckOutcome.NOT_MET
    if not cooldown_elapsed(alert, now):
        return AlertCheckOutcome.SUPPRESSED
    return AlertCheckOutcome.FIRES
