import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid

from academy.db.session import Base


class Subscription(Base):
    """Billing plan: hourly rate, monthly hour allotment and free-absence allowance.

    Rows are never updated once created. A rate change inserts a new plan and points
    superseded_by_id of the old one at it, so past billing keeps its original terms.
    """

    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    hourly_rate = Column(Numeric(12, 2), nullable=False)
    hours_per_month = Column(Integer, nullable=False, default=0)
    max_free_absences = Column(Integer, nullable=False, default=0)
    # Display amount for the package (hours_per_month x hourly_rate unless negotiated)
    total_amount = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    superseded_by_id = Column(Uuid, ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
