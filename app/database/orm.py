"""SQLAlchemy ORM models for the trading-day simulation.

This module defines all database tables using SQLAlchemy 2.0 ORM style.
Uses async support via asyncpg driver.

Usage:
    from app.database.orm import DayControl, StockPrice
    from app.database.connection import get_session

    async with get_session() as session:
        control = await session.get(DayControl, "day-control-singleton")
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


# Naming convention for constraints and indexes
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

MONEY = Numeric(20, 2)
PRICE = Numeric(20, 4)


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# DAY CONTROL & SETTINGS
# =============================================================================


class DayControl(Base):
    """Singleton row holding the simulation clock."""
    __tablename__ = "day_control"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    current_day: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    is_simulation_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    remaining_ms: Mapped[int | None] = mapped_column(Integer)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    simulation_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_day_change: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("current_day >= 0", name="current_day_non_negative"),
        CheckConstraint("total_days > 0", name="total_days_positive"),
        CheckConstraint("NOT is_paused OR is_simulation_active", name="paused_implies_active"),
        CheckConstraint("(remaining_ms IS NOT NULL) = is_paused", name="remaining_only_when_paused"),
    )


class Setting(Base):
    """Persisted key-value settings."""
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[dict] = mapped_column(JSONB, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# =============================================================================
# MARKET DATA
# =============================================================================


class Company(Base):
    """Listed company whose stock is traded in the simulation."""
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(primary_key=True)
    stock_code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sector: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    prices: Mapped[list[StockPrice]] = relationship(back_populates="company")
    reports: Mapped[list[FinancialReport]] = relationship(back_populates="company")


class StockPrice(Base):
    """Scripted price of a company on one simulated day."""
    __tablename__ = "stock_prices"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    company: Mapped[Company] = relationship(back_populates="prices")

    __table_args__ = (
        UniqueConstraint("company_id", "day_number", name="uq_stock_prices_company_day"),
        CheckConstraint("price > 0", name="price_positive"),
        CheckConstraint("day_number >= 0", name="day_number_non_negative"),
        Index("idx_stock_prices_company_day", "company_id", "day_number"),
        Index("idx_stock_prices_day", "day_number"),
    )


class FinancialReport(Base):
    """Company report published to participants on a given day."""
    __tablename__ = "financial_reports"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text)
    is_available: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    company: Mapped[Company] = relationship(back_populates="reports")

    __table_args__ = (
        Index("idx_financial_reports_day", "day_number"),
    )


class NewsItem(Base):
    """Paid news article released on a given day."""
    __tablename__ = "news_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# =============================================================================
# PARTICIPANTS & PORTFOLIOS
# =============================================================================


class Broker(Base):
    """Broker a participant trades through; pays daily interest on holdings."""
    __tablename__ = "brokers"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    fee_percentage: Mapped[Decimal] = mapped_column(Numeric(6, 4), default=Decimal("0"))
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        CheckConstraint("interest_rate >= 0", name="interest_rate_non_negative"),
    )


class Participant(Base):
    """Competing team."""
    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    team_name: Mapped[str | None] = mapped_column(String(255))
    school_origin: Mapped[str | None] = mapped_column(String(255))
    starting_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    current_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    broker_id: Mapped[int | None] = mapped_column(ForeignKey("brokers.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    broker: Mapped[Broker | None] = relationship()
    holdings: Mapped[list[PortfolioHolding]] = relationship(back_populates="participant")

    __table_args__ = (
        CheckConstraint("starting_balance >= 0", name="starting_balance_non_negative"),
        Index("idx_participants_active", "is_active"),
    )


class PortfolioHolding(Base):
    """Shares of one company held by a participant."""
    __tablename__ = "portfolio_holdings"

    id: Mapped[int] = mapped_column(primary_key=True)
    participant_id: Mapped[int] = mapped_column(ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_buy_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    participant: Mapped[Participant] = relationship(back_populates="holdings")
    company: Mapped[Company] = relationship()

    __table_args__ = (
        UniqueConstraint("participant_id", "company_id", name="uq_portfolio_holdings_company"),
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        Index("idx_portfolio_holdings_participant", "participant_id"),
    )


class TradeTransaction(Base):
    """Ledger of buy/sell orders."""
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    participant_id: Mapped[int] = mapped_column(ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    side: Mapped[str] = mapped_column(String(10), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("side IN ('buy', 'sell')", name="side"),
        Index("idx_transactions_participant", "participant_id"),
    )


class NewsPurchase(Base):
    """A participant's purchase of a news item."""
    __tablename__ = "news_purchases"

    id: Mapped[int] = mapped_column(primary_key=True)
    participant_id: Mapped[int] = mapped_column(ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    news_id: Mapped[int] = mapped_column(ForeignKey("news_items.id", ondelete="CASCADE"), nullable=False)
    price_paid: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("participant_id", "news_id", name="uq_news_purchases_participant_news"),
    )


class InterestPayment(Base):
    """Broker interest credited to a participant when a day opened."""
    __tablename__ = "interest_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    participant_id: Mapped[int] = mapped_column(ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    broker_id: Mapped[int] = mapped_column(ForeignKey("brokers.id", ondelete="CASCADE"), nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    holdings_value: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    interest_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_interest_payments_participant_day", "participant_id", "day_number"),
    )
