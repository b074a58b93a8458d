"""Domain models - pure Python dataclasses representing business entities"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional


class Frequency(str, enum.Enum):
    """How often an association collects dues"""

    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class DueStatus(str, enum.Enum):
    """Lifecycle of a single member due"""

    pending = "pending"
    paid = "paid"
    overdue = "overdue"


class RepayPolicy(str, enum.Enum):
    """What to do when a payment is recorded against a paid due"""

    reject = "reject"
    reapply = "reapply"


@dataclass(frozen=True)
class RecurrenceRule:
    """Association-level dues configuration"""

    frequency: str
    anchor_day: Optional[int]
    amount: Optional[Decimal]
    enabled: bool
    description: str = "Member dues payment"


@dataclass(frozen=True)
class DuesPeriod:
    """Closed date interval a due date covers"""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class MemberDue:
    """Obligation for one member to pay one amount for one period"""

    association_id: str
    member_id: str
    amount: Decimal
    due_date: date
    period_start: date
    status: str = DueStatus.pending.value
    paid_date: Optional[datetime] = None
    paid_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class IncomeEntry:
    """Ledger record emitted after a due is paid"""

    association_id: str
    amount: Decimal
    payer_id: str
    method: str
    due_id: Optional[str] = None


@dataclass(frozen=True)
class MemberFailure:
    """A member whose due could not be generated"""

    member_id: str
    error: str


@dataclass
class ReconciliationReport:
    """Outcome of one reconciliation pass"""

    due_date: date
    period: DuesPeriod
    generated: list = field(default_factory=list)
    existing: List[str] = field(default_factory=list)
    failures: List[MemberFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class DuesStats:
    """Counts and totals over a set of dues"""

    total: int
    paid: int
    pending: int
    overdue: int
    total_amount: Decimal
    paid_amount: Decimal
