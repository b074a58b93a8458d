"""Dues engine - reconciliation, overdue sweep and payment recording"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Protocol

from dues_service.domain.exceptions import (
    ConfigurationError,
    ConflictError,
    DomainException,
    DueAlreadyPaidError,
    InvalidPaymentError,
)
from dues_service.domain.models import (
    DuesPeriod,
    DuesStats,
    DueStatus,
    IncomeEntry,
    MemberFailure,
    ReconciliationReport,
    RecurrenceRule,
    RepayPolicy,
)
from dues_service.domain.periods import next_due_date, period_range


class DueStore(Protocol):
    """Storage the engine reads and writes dues through"""

    def find_in_period(self, association_id, member_id: str, period: DuesPeriod): ...

    def create_due(
        self,
        association_id,
        member_id: str,
        amount: Decimal,
        due_date: date,
        period: DuesPeriod,
        status: str,
    ): ...

    def save(self, due) -> None: ...


class LedgerRecorder(Protocol):
    """Accounting collaborator that books paid dues as income"""

    def record_income(self, entry: IncomeEntry): ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_rule(rule: RecurrenceRule) -> None:
    """Fail fast before generating anything from an unusable rule"""
    if not rule.enabled:
        raise ConfigurationError("Dues are not enabled for this association")
    if rule.amount is None:
        raise ConfigurationError("Dues amount is not configured")
    if rule.amount < 0:
        raise ConfigurationError(f"Dues amount must be non-negative, got {rule.amount}")
    if rule.anchor_day is None:
        raise ConfigurationError("Dues anchor day is not configured")
    if not 1 <= rule.anchor_day <= 31:
        raise ConfigurationError(f"Dues anchor day must be between 1 and 31, got {rule.anchor_day}")


class DuesPeriodEngine:
    """
    Generates one due per member per period and moves dues through their states.

    State machine:
        pending --sweep--> overdue
        pending/overdue --mark_paid--> paid
        paid --mark_paid--> rejected or re-applied, depending on repay_policy
    """

    def __init__(
        self,
        store: DueStore,
        ledger: Optional[LedgerRecorder] = None,
        repay_policy: RepayPolicy = RepayPolicy.reject,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.ledger = ledger
        self.repay_policy = RepayPolicy(repay_policy)
        self.clock = clock

    def today(self) -> date:
        return self.clock().date()

    def current_period(self, rule: RecurrenceRule) -> DuesPeriod:
        """Period containing the next due date of the rule"""
        validate_rule(rule)
        due_date = next_due_date(rule.frequency, rule.anchor_day, self.today())
        return period_range(rule.frequency, due_date, rule.anchor_day)

    def reconcile_dues(
        self,
        association_id,
        rule: RecurrenceRule,
        member_ids: Iterable[str],
    ) -> ReconciliationReport:
        """
        Ensure every active member has exactly one due for the current period.

        Each member is handled independently: a member that already has a due
        in the period (or loses an insert race for it) is reported as existing,
        and a member whose insert fails is reported as a failure without
        stopping the others. Re-running with no change generates nothing.

        Raises:
            ConfigurationError: Dues disabled or rule incomplete
        """
        validate_rule(rule)
        today = self.today()
        due_date = next_due_date(rule.frequency, rule.anchor_day, today)
        period = period_range(rule.frequency, due_date, rule.anchor_day)
        status = DueStatus.overdue if today > due_date else DueStatus.pending

        report = ReconciliationReport(due_date=due_date, period=period)
        for member_id in member_ids:
            try:
                if self.store.find_in_period(association_id, member_id, period) is not None:
                    report.existing.append(member_id)
                    continue
                due = self.store.create_due(
                    association_id=association_id,
                    member_id=member_id,
                    amount=rule.amount,
                    due_date=due_date,
                    period=period,
                    status=status.value,
                )
            except ConflictError:
                report.existing.append(member_id)
            except DomainException as e:
                logging.warning(
                    f"Due generation failed: {e}",
                    extra={"association_id": str(association_id), "member_id": member_id},
                )
                report.failures.append(MemberFailure(member_id=member_id, error=str(e)))
            else:
                report.generated.append(due)

        return report

    def sweep_overdue(self, dues: Iterable) -> List:
        """Mark pending dues whose due date has passed as overdue"""
        today = self.today()
        updated = []
        for due in dues:
            if due.status == DueStatus.pending.value and due.due_date < today:
                due.status = DueStatus.overdue.value
                self.store.save(due)
                updated.append(due)
        return updated

    def mark_paid(
        self,
        due,
        paid_amount: Optional[Decimal] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ):
        """
        Record a payment against a due and book it with the ledger.

        The status change and the ledger entry go through the same storage
        session; the caller commits or rolls back both.

        Raises:
            DueAlreadyPaidError: Due is paid and repay_policy is reject
            InvalidPaymentError: Negative paid amount
        """
        if due.status == DueStatus.paid.value and self.repay_policy is RepayPolicy.reject:
            raise DueAlreadyPaidError(f"Due {due.id} is already paid")
        if paid_amount is not None and paid_amount < 0:
            raise InvalidPaymentError(f"Paid amount must be non-negative, got {paid_amount}")

        due.status = DueStatus.paid.value
        due.paid_date = self.clock()
        due.paid_amount = paid_amount if paid_amount is not None else due.amount
        if payment_method:
            due.payment_method = payment_method
        if notes:
            due.notes = notes
        self.store.save(due)

        if self.ledger is not None:
            self.ledger.record_income(
                IncomeEntry(
                    association_id=due.association_id,
                    amount=due.paid_amount,
                    payer_id=due.member_id,
                    method=due.payment_method or "manual",
                    due_id=due.id,
                )
            )

        return due


def summarize_dues(dues: Iterable) -> DuesStats:
    """Counts per status plus billed and collected totals"""
    dues = list(dues)
    paid = [d for d in dues if d.status == DueStatus.paid.value]
    return DuesStats(
        total=len(dues),
        paid=len(paid),
        pending=sum(1 for d in dues if d.status == DueStatus.pending.value),
        overdue=sum(1 for d in dues if d.status == DueStatus.overdue.value),
        total_amount=sum((Decimal(d.amount) for d in dues), Decimal("0")),
        paid_amount=sum((Decimal(d.paid_amount or 0) for d in paid), Decimal("0")),
    )
