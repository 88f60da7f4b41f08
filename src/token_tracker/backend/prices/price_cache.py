# price_cache.py
from src.token_tracker.backend.tokens.token_models import PriceData

# Latest live snapshot per symbol, pushed in by the price feed.
_prices: dict[str, PriceData] = {}

def set_price_data(price_data: PriceData) -> PriceData:
    """Stores the snapshot under its upper-cased symbol, replacing the previous one."""
    price_data = price_data.model_copy(update={"symbol": price_data.symbol.upper()})
    _prices[price_data.symbol] = price_data
    return price_data

def get_price_data(symbol: str) -> PriceData | None:
    """Returns the latest snapshot for a symbol, None when the price is unknown."""
    return _prices.get(symbol.upper())

def get_all_prices() -> dict[str, PriceData]:
    return dict(_prices)

def clear_prices():
    _prices.clear()
