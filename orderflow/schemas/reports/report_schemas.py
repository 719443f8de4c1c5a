from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from orderflow.constants.payment import PaymentMethod


# =========================
# REVENUE SERIES
# =========================
class MonthlyRevenue(BaseModel):
    month: str
    revenue: Decimal
    paid: Decimal


# =========================
# PAYMENTS
# =========================
class RecentPayment(BaseModel):
    payment_id: str
    order_id: str
    order_number: str
    client_name: str
    amount: Decimal
    date: datetime
    method: PaymentMethod
    remarks: Optional[str] = None


# =========================
# TOTALS
# =========================
class FinancialSummary(BaseModel):
    total_orders: int
    total_revenue: Decimal
    total_paid: Decimal
    total_pending: Decimal
    average_order_value: Decimal


class ReportSummary(BaseModel):
    financials: FinancialSummary
    status_counts: Dict[str, int]
    payment_status_counts: Dict[str, int]
    department_counts: Dict[str, int]
    monthly_revenue: List[MonthlyRevenue]
