"""Leaderboard and portfolio valuation schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LeaderboardEntryResponse(_CamelModel):
    rank: int = Field(..., ge=1)
    team_name: str = Field(..., alias="teamName")
    school: str
    portfolio_value: float = Field(..., alias="portfolioValue")
    return_percentage: float = Field(..., alias="returnPercentage")


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntryResponse]
    total: int = Field(..., description="Number of ranked participants before truncation")
    day: int = Field(..., description="Day the prices were taken from")


class HoldingValuationResponse(_CamelModel):
    company_id: int = Field(..., alias="companyId")
    stock_code: str = Field(..., alias="stockCode")
    company_name: str = Field(..., alias="companyName")
    quantity: int
    average_buy_price: float = Field(..., alias="averageBuyPrice")
    current_price: float = Field(..., alias="currentPrice")
    total_equity: float = Field(..., alias="totalEquity")
    profit_loss: float = Field(..., alias="profitLoss")


class PortfolioValuationResponse(_CamelModel):
    participant_id: int = Field(..., alias="participantId")
    team_name: Optional[str] = Field(default=None, alias="teamName")
    day: int
    cash_balance: float = Field(..., alias="cashBalance")
    holdings_value: float = Field(..., alias="holdingsValue")
    total_value: float = Field(..., alias="totalValue")
    return_percentage: float = Field(..., alias="returnPercentage")
    holdings: List[HoldingValuationResponse] = Field(default_factory=list)
