import time
from datetime import datetime, timezone
from typing import Literal
from pydantic import BaseModel, Field
from src.token_tracker.backend.query.search import matches_query
from src.token_tracker.backend.tokens.token_models import PriceData, Token

DAY_MS = 86400000

DATE_RANGE_DAYS = {
    "today": 1,
    "7days": 7,
    "30days": 30,
    "3months": 90,
}

CEX_EXCHANGES = ["BINANCE", "COINBASE", "KRAKEN", "MEXC", "GATE.IO", "KUCOIN", "HUOBI", "OKX", "BYBIT"]
DEX_EXCHANGES = ["UNISWAP", "SUSHISWAP", "PANCAKESWAP", "CURVE", "BALANCER"]

NEW_TOKEN_MAX_AGE_MS = 7 * DAY_MS
ACTIVE_MIN_EXCHANGES = 3
DECLINING_CHANGE_PERCENT = -2
SIGNIFICANT_CHANGE_PERCENT = 5

class RangeFilter(BaseModel):
    min: float | None = None
    max: float | None = None

class TokenFilters(BaseModel):
    search: str | None = None
    dateRange: Literal["all", "today", "7days", "30days", "3months", "custom"] = "all"
    customDateStart: str | None = None
    customDateEnd: str | None = None
    priceRange: RangeFilter | None = None
    priceChange: Literal["all", "positive", "negative", "significant"] = "all"
    exchangeCount: RangeFilter | None = None
    exchanges: list[str] = Field(default_factory=list)
    status: Literal["all", "new", "active", "declining"] = "all"
    exchangeType: Literal["all", "cex", "dex"] = "all"


def _date_to_ms(value: str) -> int | None:
    """ISO date/datetime string to epoch millis (naive values are taken as UTC)."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _passes_date_range(token: Token, filters: TokenFilters, now: int) -> bool:
    if filters.dateRange == "all":
        return True
    if filters.dateRange == "custom":
        if filters.customDateStart:
            start = _date_to_ms(filters.customDateStart)
            if start is not None and token.added < start:
                return False
        if filters.customDateEnd:
            end = _date_to_ms(filters.customDateEnd)
            if end is not None and token.added > end:
                return False
        return True
    return now - token.added <= DATE_RANGE_DAYS[filters.dateRange] * DAY_MS


def _passes_price(price_data: PriceData | None, filters: TokenFilters) -> bool:
    price = price_data.averagePrice if price_data is not None else None
    if filters.priceRange is not None and price is not None:
        if filters.priceRange.min is not None and price < filters.priceRange.min:
            return False
        if filters.priceRange.max is not None and price > filters.priceRange.max:
            return False

    change = price_data.change24h if price_data is not None else None
    if filters.priceChange != "all" and change is not None:
        if filters.priceChange == "positive" and change <= 0:
            return False
        if filters.priceChange == "negative" and change >= 0:
            return False
        if filters.priceChange == "significant" and abs(change) < SIGNIFICANT_CHANGE_PERCENT:
            return False
    return True


def _passes_exchanges(token: Token, filters: TokenFilters) -> bool:
    count = token.exchange_count()
    if filters.exchangeCount is not None:
        if filters.exchangeCount.min is not None and count < filters.exchangeCount.min:
            return False
        if filters.exchangeCount.max is not None and count > filters.exchangeCount.max:
            return False

    token_exchanges = [exchange.upper() for exchange in token.all_exchanges()]

    if filters.exchanges:
        wanted = [exchange.upper() for exchange in filters.exchanges]
        if not any(w in t or t in w for w in wanted for t in token_exchanges):
            return False

    if filters.exchangeType == "cex":
        if not any(cex in t for t in token_exchanges for cex in CEX_EXCHANGES):
            return False
    elif filters.exchangeType == "dex":
        if not any(dex in t for t in token_exchanges for dex in DEX_EXCHANGES):
            return False
    return True


def _passes_status(token: Token, price_data: PriceData | None, filters: TokenFilters, now: int) -> bool:
    if filters.status == "new":
        return now - token.added <= NEW_TOKEN_MAX_AGE_MS
    exchange_data = token.exchangeData
    if filters.status == "active":
        has_new = exchange_data is not None and len(exchange_data.newExchanges24h) > 0
        return has_new or token.exchange_count() >= ACTIVE_MIN_EXCHANGES
    if filters.status == "declining":
        has_removed = exchange_data is not None and len(exchange_data.removedExchanges24h) > 0
        change = price_data.change24h if price_data is not None else None
        return has_removed or (change is not None and change < DECLINING_CHANGE_PERCENT)
    return True


def token_matches_filters(token: Token, price_data: PriceData | None, filters: TokenFilters, now: int | None = None) -> bool:
    """
    Applies the search query and every structured filter to one token.
    Filters that depend on live prices are skipped when the price is unknown.
    """
    if now is None:
        now = int(time.time() * 1000)
    if filters.search and not matches_query(token, filters.search, price_data):
        return False
    return (
        _passes_date_range(token, filters, now)
        and _passes_price(price_data, filters)
        and _passes_exchanges(token, filters)
        and _passes_status(token, price_data, filters, now)
    )


def filter_tokens(tokens: list[Token], prices: dict[str, PriceData], filters: TokenFilters, now: int | None = None) -> list[Token]:
    if now is None:
        now = int(time.time() * 1000)
    return [token for token in tokens if token_matches_filters(token, prices.get(token.symbol), filters, now)]
