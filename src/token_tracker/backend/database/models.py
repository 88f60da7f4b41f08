from sqlalchemy import Column, Integer, BigInteger, String, Float, Boolean, JSON, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# All timestamps are epoch milliseconds.

class TokenEntry(Base):
    __tablename__ = "tokens"

    id = Column(String, primary_key=True, index=True)
    symbol = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    exchanges = Column(JSON, nullable=False, default=list)
    added = Column(BigInteger, nullable=False)
    all_time_high = Column(Float, nullable=True)
    all_time_low = Column(Float, nullable=True)
    ath_last_updated = Column(BigInteger, nullable=True)
    exchange_data = Column(JSON, nullable=True)

class DeletedTokenEntry(Base):
    __tablename__ = "deleted_tokens"

    id = Column(String, primary_key=True, index=True)  # id of the deleted token
    symbol = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    exchanges = Column(JSON, nullable=False, default=list)
    date_added = Column(BigInteger, nullable=False)
    date_deleted = Column(BigInteger, nullable=False)
    deletion_reason = Column(Text, nullable=False)
    deleted_by = Column(String, nullable=True)

class AlertEntry(Base):
    __tablename__ = "alerts"

    id = Column(String, primary_key=True, index=True)
    token_symbol = Column(String, index=True, nullable=False)
    token_name = Column(String, nullable=False)
    alert_type = Column(String, nullable=False)
    conditions = Column(JSON, nullable=False, default=dict)
    message = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)
    last_triggered = Column(BigInteger, nullable=True)
    trigger_count = Column(Integer, default=0, nullable=False)

class TriggerEventEntry(Base):
    __tablename__ = "alert_trigger_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(String, index=True, nullable=False)
    token_symbol = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
