from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, computed_field

from .formatting import format_billing_period, format_currency, month_range_label


class BillingCalculation(BaseModel):
    """
    Attendance-based bill for one student over [period_start, period_end] (inclusive days).

    Amounts are exact Decimals; only the formatted_* fields are rounded.
    free_absences_used counts every scheduled session not attended, unmarked ones included.
    """

    student_id: UUID
    subscription_id: UUID
    student_subscription_id: UUID
    period_start: date
    period_end: date
    hours_scheduled: Decimal
    hours_attended: Decimal
    sessions_scheduled: int
    sessions_attended: int
    free_absences_used: int
    max_free_absences: int
    free_absences_remaining: int
    hourly_rate: Decimal
    total_amount: Decimal
    currency: str

    @computed_field
    @property
    def formatted_total_amount(self) -> str:
        return format_currency(self.total_amount, self.currency)

    @computed_field
    @property
    def billing_period(self) -> str:
        return format_billing_period(self.period_start, self.period_end)

    @computed_field
    @property
    def months(self) -> str:
        return month_range_label(self.period_start, self.period_end)
