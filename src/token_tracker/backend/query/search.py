"""
Search query language for the token table.

A query is a chain of terms joined by `|` (OR) and `&` (AND). OR is split first,
so `a&b|c` reads as `(a&b)|c`. There is no grouping with parentheses.

A single term is one of:
    column:value     symbol, name, exchange, status (substring) or
                     price, change, volume, ath (numeric, with optional > < prefix;
                     price also accepts =, matching within 0.01)
    "exact text"     substring of the token's searchable text
    words ...        any whitespace-separated word found in the searchable text

Unknown columns fall back to the plain word search on the whole term. Nothing
in here raises on bad input; a term that cannot be evaluated simply doesn't match.
"""
from src.token_tracker.backend.query.values import as_text, leading_float
from src.token_tracker.backend.tokens.token_models import PriceData, Token

PRICE_EQUALS_TOLERANCE = 0.01


def _mexc_field(price_data: PriceData | None, name: str):
    if price_data is None or price_data.mexc is None:
        return None
    return getattr(price_data.mexc, name)


def _numeric_column_value(column: str, token: Token, price_data: PriceData | None):
    if column == "price":
        return price_data.averagePrice if price_data is not None else None
    if column == "change":
        return price_data.change24h if price_data is not None else None
    if column == "volume":
        return _mexc_field(price_data, "volume24h")
    if column == "ath":
        return token.allTimeHigh
    return None


NUMERIC_COLUMNS = ("price", "change", "volume", "ath")
TEXT_COLUMNS = ("symbol", "name", "exchange", "status")


def build_searchable_text(token: Token, price_data: PriceData | None = None) -> str:
    """Lower-cased blob that general and quoted terms are matched against."""
    parts = [
        token.symbol,
        token.name,
        *token.all_exchanges(),
        _mexc_field(price_data, "status") or "",
        as_text(price_data.averagePrice) if price_data is not None else "",
        as_text(token.allTimeHigh),
        as_text(token.allTimeLow),
    ]
    return " ".join(parts).lower()


def _match_numeric(field_value, value: str, allow_equals: bool) -> bool:
    if field_value is None:
        return False
    if value.startswith(">") or value.startswith("<") or (allow_equals and value.startswith("=")):
        threshold = leading_float(value[1:])
        if threshold is None:
            return False
        if value[0] == ">":
            return field_value > threshold
        if value[0] == "<":
            return field_value < threshold
        return abs(field_value - threshold) < PRICE_EQUALS_TOLERANCE
    return value in as_text(field_value)


def _match_column(column: str, value: str, token: Token, price_data: PriceData | None) -> bool:
    if column == "symbol":
        return value in token.symbol.lower()
    if column == "name":
        return value in token.name.lower()
    if column == "exchange":
        return any(value in exchange.lower() for exchange in token.all_exchanges())
    if column == "status":
        status = _mexc_field(price_data, "status") or ""
        return value in status.lower()
    field_value = _numeric_column_value(column, token, price_data)
    return _match_numeric(field_value, value, allow_equals=(column == "price"))


def evaluate_search_term(token: Token, term: str, price_data: PriceData | None = None) -> bool:
    search_term = term.lower().strip()

    if ":" in search_term:
        column, _, value = search_term.partition(":")
        column = column.strip()
        if column in NUMERIC_COLUMNS or column in TEXT_COLUMNS:
            return _match_column(column, value.strip(), token, price_data)
        # unknown column: plain search on the whole term

    searchable_text = build_searchable_text(token, price_data)

    if search_term.startswith('"') and search_term.endswith('"'):
        return search_term[1:-1] in searchable_text

    return any(word in searchable_text for word in search_term.split())


def matches_query(token: Token, query: str | None, price_data: PriceData | None = None) -> bool:
    """
    Returns True if the token (with its optional live snapshot) matches the query.
    An empty or whitespace-only query matches everything.
    """
    if query is None or not query.strip():
        return True

    if "|" in query:
        return any(matches_query(token, part.strip(), price_data) for part in query.split("|"))

    if "&" in query:
        return all(matches_query(token, part.strip(), price_data) for part in query.split("&"))

    return evaluate_search_term(token, query, price_data)


def filter_tokens_by_query(tokens: list[Token], prices: dict[str, PriceData], query: str | None) -> list[Token]:
    return [token for token in tokens if matches_query(token, query, prices.get(token.symbol))]
