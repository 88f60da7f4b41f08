from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
# Alert models. Each alert type owns its own conditions model, so a price_above
# alert cannot carry volume thresholds and the like.

AlertType = Literal[
    "price_above",
    "price_below",
    "price_change",
    "volume_above",
    "volume_below",
    "exchange_count",
    "new_exchange",
    "removed_exchange",
    "ath_distance",
    "percent_from_ath",
    "trading_status",
    "combined",
]

class _Conditions(BaseModel):
    model_config = ConfigDict(extra="forbid")

class PriceAboveConditions(_Conditions):
    alertType: Literal["price_above"] = "price_above"
    priceAbove: float | None = None

class PriceBelowConditions(_Conditions):
    alertType: Literal["price_below"] = "price_below"
    priceBelow: float | None = None

class PriceChangeConditions(_Conditions):
    alertType: Literal["price_change"] = "price_change"
    priceChangePercent: float | None = None
    priceChangeDirection: Literal["positive", "negative", "any"] = "positive"

class VolumeAboveConditions(_Conditions):
    alertType: Literal["volume_above"] = "volume_above"
    volumeAbove: float | None = None

class VolumeBelowConditions(_Conditions):
    alertType: Literal["volume_below"] = "volume_below"
    volumeBelow: float | None = None

class ExchangeCountConditions(_Conditions):
    alertType: Literal["exchange_count"] = "exchange_count"
    exchangeCountAbove: int | None = None
    exchangeCountBelow: int | None = None

class NewExchangeConditions(_Conditions):
    alertType: Literal["new_exchange"] = "new_exchange"
    newExchangeAlert: bool = False

class RemovedExchangeConditions(_Conditions):
    alertType: Literal["removed_exchange"] = "removed_exchange"
    removedExchangeAlert: bool = False

class AthDistanceConditions(_Conditions):
    alertType: Literal["ath_distance"] = "ath_distance"
    athDistancePercent: float | None = None
    athDistanceDirection: Literal["closer", "further"] = "closer"

class PercentFromAthConditions(_Conditions):
    alertType: Literal["percent_from_ath"] = "percent_from_ath"
    percentFromAthThreshold: float | None = None
    percentFromAthDirection: Literal["below", "above"] = "below"

class TradingStatusConditions(_Conditions):
    alertType: Literal["trading_status"] = "trading_status"
    tradingStatus: str | None = None

class CombinedCondition(BaseModel):
    field: str
    operator: Literal["above", "below", "equals", "contains"]
    value: float | str
    logic: Literal["and", "or"] | None = None  # how this condition joins the NEXT one

class CombinedConditions(_Conditions):
    alertType: Literal["combined"] = "combined"
    combinedConditions: list[CombinedCondition] = Field(default_factory=list)

AlertConditions = Annotated[
    Union[
        PriceAboveConditions,
        PriceBelowConditions,
        PriceChangeConditions,
        VolumeAboveConditions,
        VolumeBelowConditions,
        ExchangeCountConditions,
        NewExchangeConditions,
        RemovedExchangeConditions,
        AthDistanceConditions,
        PercentFromAthConditions,
        TradingStatusConditions,
        CombinedConditions,
    ],
    Field(discriminator="alertType"),
]

def _tag_conditions(data):
    """
    Copies the alert-level alertType into the conditions payload so the
    conditions union can pick its variant, e.g.
    {"alertType": "price_above", "conditions": {"priceAbove": 100}}.
    """
    if not isinstance(data, dict):
        return data
    data = dict(data)
    alert_type = data.get("alertType")
    conditions = data.get("conditions")
    if conditions is None:
        conditions = {}
    if isinstance(conditions, dict):
        if alert_type is not None and "alertType" not in conditions:
            conditions = {**conditions, "alertType": alert_type}
        elif alert_type is None and "alertType" in conditions:
            data["alertType"] = conditions["alertType"]
    elif alert_type is None and isinstance(conditions, BaseModel):
        data["alertType"] = getattr(conditions, "alertType", None)
    data["conditions"] = conditions
    return data

class AlertDefinition(BaseModel):
    tokenSymbol: str
    tokenName: str | None = None
    alertType: AlertType
    conditions: AlertConditions
    message: str
    isActive: bool = True

    @model_validator(mode="before")
    @classmethod
    def tag_conditions(cls, data):
        return _tag_conditions(data)

    @model_validator(mode="after")
    def check_alert_type(self):
        if self.conditions.alertType != self.alertType:
            raise ValueError(
                f"conditions are for '{self.conditions.alertType}' but alertType is '{self.alertType}'"
            )
        return self

# Persisted alert
class Alert(AlertDefinition):
    id: str
    tokenName: str
    createdAt: int  # epoch millis
    updatedAt: int
    lastTriggered: int | None = None
    triggerCount: int = 0

class AlertCreate(AlertDefinition):
    pass

class AlertUpdate(BaseModel):
    isActive: bool | None = None
    message: str | None = None

class TriggerEvent(BaseModel):
    alertId: str
    tokenSymbol: str
    message: str
    timestamp: int
