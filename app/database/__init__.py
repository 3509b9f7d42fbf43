"""Database module: SQLAlchemy async engine, sessions and ORM models."""

from .connection import (
    close_database,
    close_sqlalchemy_engine,
    database_healthcheck,
    get_async_database_url,
    get_engine,
    get_session,
    init_database,
    init_sqlalchemy_engine,
)
from .orm import (
    Base,
    Broker,
    Company,
    DayControl,
    FinancialReport,
    InterestPayment,
    NewsItem,
    NewsPurchase,
    Participant,
    PortfolioHolding,
    Setting,
    StockPrice,
    TradeTransaction,
)


__all__ = [
    # SQLAlchemy
    "init_sqlalchemy_engine",
    "close_sqlalchemy_engine",
    "get_session",
    "get_engine",
    "get_async_database_url",
    "init_database",
    "close_database",
    "database_healthcheck",
    "Base",
    # ORM models
    "DayControl",
    "Setting",
    "Company",
    "StockPrice",
    "FinancialReport",
    "NewsItem",
    "Broker",
    "Participant",
    "PortfolioHolding",
    "TradeTransaction",
    "NewsPurchase",
    "InterestPayment",
]
