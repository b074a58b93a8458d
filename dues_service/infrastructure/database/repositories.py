"""Data access layer for associations, members, dues and dues income"""

import uuid
import functools
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from dues_service.infrastructure.database.models import Association, Member, MemberDue, DuesIncome
from dues_service.domain.exceptions import ConflictError, PersistenceError
from dues_service.domain.models import DuesPeriod, IncomeEntry, RecurrenceRule

PERIOD_CONSTRAINT = "uq_member_due_period"
SQLITE_PERIOD_COLUMNS = "member_due.association_id, member_due.member_id, member_due.period_start"


def _is_period_conflict(error: IntegrityError) -> bool:
    """Whether the violated constraint is the one-due-per-member-and-period key"""
    diag = getattr(error.orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", None):
        return diag.constraint_name == PERIOD_CONSTRAINT
    message = str(error.orig)
    return PERIOD_CONSTRAINT in message or SQLITE_PERIOD_COLUMNS in message


def translate_read_errors(method):
    """Re-raise database failures from a query method as PersistenceError"""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Query {method.__name__} failed: {e}") from e

    return wrapper


class AssociationRepository:
    """Repository for associations and their memberships"""

    def __init__(self, db: Session):
        self.db = db

    @translate_read_errors
    def get_association(self, association_id: uuid.UUID) -> Optional[Association]:
        return self.db.query(Association).filter(Association.id == association_id).first()

    @translate_read_errors
    def get_membership(self, association_id: uuid.UUID, user_id: str) -> Optional[Member]:
        """Membership of a user in an association, any status"""
        return (
            self.db.query(Member)
            .filter(Member.association_id == association_id, Member.user_id == user_id)
            .first()
        )

    @translate_read_errors
    def get_active_member_ids(self, association_id: uuid.UUID) -> List[str]:
        """User IDs of active members, oldest membership first"""
        rows = (
            self.db.query(Member.user_id)
            .filter(Member.association_id == association_id, Member.status == "active")
            .order_by(Member.joined_at, Member.user_id)
            .all()
        )
        return [row.user_id for row in rows]

    @staticmethod
    def dues_rule(association: Association) -> RecurrenceRule:
        """Recurrence rule from the association's dues settings"""
        return RecurrenceRule(
            frequency=association.dues_frequency,
            anchor_day=association.dues_anchor_day,
            amount=Decimal(association.dues_amount) if association.dues_amount is not None else None,
            enabled=bool(association.dues_enabled),
            description=association.dues_description,
        )


class DueRepository:
    """Repository for member dues"""

    def __init__(self, db: Session):
        self.db = db

    @translate_read_errors
    def find_in_period(self, association_id: uuid.UUID, member_id: str, period: DuesPeriod) -> Optional[MemberDue]:
        """Any due of the member whose due date falls inside the period"""
        return (
            self.db.query(MemberDue)
            .filter(
                MemberDue.association_id == association_id,
                MemberDue.member_id == member_id,
                MemberDue.due_date >= period.start,
                MemberDue.due_date <= period.end,
            )
            .first()
        )

    def create_due(
        self,
        association_id: uuid.UUID,
        member_id: str,
        amount: Decimal,
        due_date: date,
        period: DuesPeriod,
        status: str,
    ) -> MemberDue:
        """
        Insert a due unless one exists for the same member and period.

        Runs under a savepoint so a lost race or a failed insert leaves the
        surrounding session usable.

        Raises:
            ConflictError: Unique (association, member, period_start) violated
            PersistenceError: Any other database failure
        """
        db_due = MemberDue(
            association_id=association_id,
            member_id=member_id,
            amount=amount,
            due_date=due_date,
            period_start=period.start,
            status=status,
        )
        try:
            with self.db.begin_nested():
                self.db.add(db_due)
        except IntegrityError as e:
            if not _is_period_conflict(e):
                raise PersistenceError(f"Could not create due for member {member_id}: {e}") from e
            raise ConflictError(f"Due already exists for member {member_id} from {period.start}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not create due for member {member_id}: {e}") from e
        return db_due

    def save(self, due: MemberDue) -> None:
        try:
            self.db.add(due)
            self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save due {due.id}: {e}") from e

    @translate_read_errors
    def get_due(self, due_id: uuid.UUID) -> Optional[MemberDue]:
        return self.db.query(MemberDue).filter(MemberDue.id == due_id).first()

    @translate_read_errors
    def get_dues_by_association(self, association_id: uuid.UUID) -> List[Tuple[MemberDue, Optional[str]]]:
        """Dues of an association with the payer's member name, latest due date first"""
        return (
            self.db.query(MemberDue, Member.name)
            .outerjoin(
                Member,
                and_(
                    Member.association_id == MemberDue.association_id,
                    Member.user_id == MemberDue.member_id,
                ),
            )
            .filter(MemberDue.association_id == association_id)
            .order_by(MemberDue.due_date.desc())
            .all()
        )

    @translate_read_errors
    def get_dues_by_member(self, member_id: str) -> List[MemberDue]:
        """Dues of one payer across all associations, latest due date first"""
        return (
            self.db.query(MemberDue)
            .filter(MemberDue.member_id == member_id)
            .order_by(MemberDue.due_date.desc())
            .all()
        )


class IncomeRepository:
    """Ledger of income booked from dues payments"""

    def __init__(self, db: Session):
        self.db = db

    def record_income(self, entry: IncomeEntry) -> DuesIncome:
        """
        Book a dues payment as income.

        Idempotent per due: recording the same due again updates its existing
        income row instead of adding a second one.
        """
        try:
            db_income = None
            if entry.due_id is not None:
                db_income = self.db.query(DuesIncome).filter(DuesIncome.due_id == entry.due_id).first()

            payer = (
                self.db.query(Member)
                .filter(Member.association_id == entry.association_id, Member.user_id == entry.payer_id)
                .first()
            )
            payer_name = payer.name if payer else "Member"

            if db_income is None:
                db_income = DuesIncome(association_id=entry.association_id, due_id=entry.due_id)
                self.db.add(db_income)

            db_income.amount = entry.amount
            db_income.payer_id = entry.payer_id
            db_income.payment_method = entry.method
            db_income.description = f"Dues payment from {payer_name}"
            self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not record income for due {entry.due_id}: {e}") from e
        return db_income

    @translate_read_errors
    def get_income_for_due(self, due_id: uuid.UUID) -> Optional[DuesIncome]:
        return self.db.query(DuesIncome).filter(DuesIncome.due_id == due_id).first()
