"""Snapshot resource models returned by the dashboard backend."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResourceCategory(str, Enum):
    """Resource categories; each maps to one snapshot endpoint and one loading flag."""

    POSITIONS = "positions"
    ORDERS = "orders"
    TRADES = "trades"
    OVERVIEW = "overview"
    ACTIVITY = "activity"


class _Resource(BaseModel):
    # The backend adds fields over time; keep whatever it sends.
    # Identifiers come back as numbers from some brokers.
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class Account(_Resource):
    """Trading account known to the backend."""

    account_id: str
    name: str = ""
    host: Optional[str] = None
    port: Optional[int] = None
    connected: bool = False
    user_id: Optional[str] = None
    user_name: Optional[str] = None


class Position(_Resource):
    """Open position."""

    symbol: str
    type: str = ""
    quantity: float = 0.0
    avg_cost: float = 0.0
    init_quantity: float = 0.0
    init_price: float = 0.0
    realized_pnl: float = 0.0
    create_time: Optional[str] = None
    unrealized_pnl: float = 0.0
    mark_price: Optional[float] = None


class Order(_Resource):
    """Working or historical order."""

    order_id: str
    token: Optional[str] = None
    symbol: str
    side: str = ""
    order_type: str = ""
    quantity: float = 0.0
    left_quantity: float = 0.0
    canceled_quantity: float = 0.0
    price: Optional[float] = None
    route: Optional[str] = None
    status: str = ""
    time: Optional[str] = None
    original_order_id: Optional[str] = None
    account: Optional[str] = None
    trader: Optional[str] = None
    order_source: Optional[str] = None


class Trade(_Resource):
    """Executed trade (fill)."""

    trade_id: str
    symbol: str
    side: str = ""
    quantity: float = 0.0
    price: float = 0.0
    route: Optional[str] = None
    time: Optional[str] = None
    order_id: Optional[str] = None
    liquidity: Optional[str] = None
    ecn_fee: float = 0.0
    realized_pl: float = 0.0


class AccountOverview(_Resource):
    """Account equity and P&L summary."""

    account_id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    current_equity: float = 0.0
    open_equity: float = 0.0
    realized_pl: float = 0.0
    unrealized_pl: float = 0.0
    net_pl: float = 0.0
    buying_power: float = 0.0
    overnight_bp: float = 0.0
    equity_exposure: float = 0.0
    commission: float = 0.0
    fees: float = 0.0
    last_update: Optional[str] = None


class Activity(_Resource):
    """Entry of the account activity log."""

    type: str
    timestamp: str
    symbol: str = ""
    side: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    realized_pl: Optional[float] = None
    data: Any = None


class CategorySnapshot(BaseModel):
    """Last applied snapshot for one category."""

    category: ResourceCategory
    account_id: str
    data: Any = Field(..., description="List of resources, or the overview object")
    fetched_at: datetime
    sequence: int = Field(default=0, description="Request sequence number that produced it")
