"""Student subscription: binds a student to a plan for [start_date, end_date)."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import relationship

from academy.core.enums import SubscriptionStatus
from academy.db.session import Base


class StudentSubscription(Base):
    """
    status is written only by the subscription state machine
    (academy.api.v1.subscriptions.service).
    """

    __tablename__ = "student_subscriptions"
    __table_args__ = (
        CheckConstraint("status IN ('active','inactive')", name="chk_student_subscription_status"),
        CheckConstraint("start_date < end_date", name="chk_student_subscription_dates"),
        # At most one active subscription per student; a concurrent activate hits this
        Index(
            "uq_student_subscription_one_active",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, nullable=False, index=True)
    subscription_id = Column(Uuid, ForeignKey("subscriptions.id", ondelete="RESTRICT"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)  # exclusive
    every_month = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    subscription = relationship("Subscription", lazy="joined")
