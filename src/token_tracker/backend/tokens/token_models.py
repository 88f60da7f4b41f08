from pydantic import BaseModel, Field
# Pydantic models for tracked tokens and their live price snapshots

class ExchangeData(BaseModel):
    totalExchanges: int | None = None
    exchanges: list[str] = Field(default_factory=list)
    newExchanges24h: list[str] = Field(default_factory=list)
    removedExchanges24h: list[str] = Field(default_factory=list)
    lastUpdated: int | None = None
    exchangeChange24h: int | None = None
    dataSource: str | None = None

class Token(BaseModel):
    id: str
    symbol: str
    name: str
    exchanges: list[str] = Field(default_factory=list)
    added: int  # epoch millis
    allTimeHigh: float | None = None
    allTimeLow: float | None = None
    athLastUpdated: int | None = None
    exchangeData: ExchangeData | None = None

    def exchange_count(self) -> int:
        """Scraped exchange total when available, otherwise the exchanges the token was registered with."""
        if self.exchangeData is not None and self.exchangeData.totalExchanges is not None:
            return self.exchangeData.totalExchanges
        return len(self.exchanges)

    def all_exchanges(self) -> list[str]:
        scraped = self.exchangeData.exchanges if self.exchangeData is not None else []
        return [*scraped, *self.exchanges]

class ExchangeTicker(BaseModel):
    price: float | None = None
    volume: float | None = None
    high24h: float | None = None
    low24h: float | None = None
    volume24h: float | None = None
    openPrice: float | None = None
    priceChange: float | None = None
    count: int | None = None
    bidPrice: float | None = None
    askPrice: float | None = None
    status: str | None = None
    tradingEnabled: bool | None = None

class ExchangeSnapshots(BaseModel):
    mexc: ExchangeTicker | None = None
    gateio: ExchangeTicker | None = None

class PriceData(BaseModel):
    symbol: str
    timestamp: int | None = None
    averagePrice: float | None = None
    change24h: float | None = None
    exchanges: ExchangeSnapshots = Field(default_factory=ExchangeSnapshots)

    @property
    def mexc(self) -> ExchangeTicker | None:
        return self.exchanges.mexc

class DeletedToken(BaseModel):
    id: str
    symbol: str
    name: str
    exchanges: list[str] = Field(default_factory=list)
    dateAdded: int
    dateDeleted: int
    deletionReason: str
    deletedBy: str | None = None

# Request bodies

class TokenCreate(BaseModel):
    symbol: str
    name: str | None = None
    exchanges: list[str] = Field(default_factory=list)

class TokenDelete(BaseModel):
    reason: str
    deletedBy: str | None = None

class AthAtlUpdate(BaseModel):
    allTimeHigh: float | None = None
    allTimeLow: float | None = None
    athLastUpdated: int | None = None
