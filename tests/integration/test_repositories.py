"""Integration tests for the SQL repositories"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import text
from dues_service.domain.exceptions import ConflictError, PersistenceError
from dues_service.domain.models import DuesPeriod, IncomeEntry
from dues_service.infrastructure.database.models import DuesIncome, MemberDue
from dues_service.infrastructure.database.repositories import (
    AssociationRepository,
    DueRepository,
    IncomeRepository,
)

MARCH = DuesPeriod(start=date(2024, 3, 2), end=date(2024, 4, 1))


def test_active_member_ids_skip_pending_members(db, association):
    ids = AssociationRepository(db).get_active_member_ids(association.id)

    assert sorted(ids) == ["u-1", "u-admin", "u-mod"]


def test_dues_rule_from_settings(db, association):
    rule = AssociationRepository.dues_rule(association)

    assert rule.enabled is True
    assert rule.frequency == "monthly"
    assert rule.anchor_day == 1
    assert rule.amount == Decimal("50")
    assert rule.description == "Member dues payment"


def test_find_in_period_is_inclusive(db, association):
    repo = DueRepository(db)
    repo.create_due(association.id, "u-1", Decimal("50"), date(2024, 4, 1), MARCH, "pending")

    assert repo.find_in_period(association.id, "u-1", MARCH) is not None
    assert repo.find_in_period(association.id, "u-1", DuesPeriod(date(2024, 4, 1), date(2024, 4, 1))) is not None
    assert repo.find_in_period(association.id, "u-1", DuesPeriod(date(2024, 4, 2), date(2024, 5, 1))) is None
    assert repo.find_in_period(association.id, "u-mod", MARCH) is None


def test_duplicate_period_insert_raises_conflict(db, association):
    repo = DueRepository(db)
    repo.create_due(association.id, "u-1", Decimal("50"), date(2024, 4, 1), MARCH, "pending")

    with pytest.raises(ConflictError):
        repo.create_due(association.id, "u-1", Decimal("50"), date(2024, 3, 20), MARCH, "pending")

    # Session is still usable after the rolled back savepoint
    repo.create_due(association.id, "u-mod", Decimal("50"), date(2024, 4, 1), MARCH, "pending")
    db.commit()
    assert db.query(MemberDue).count() == 2


def test_non_unique_integrity_error_is_not_a_conflict(db, association):
    repo = DueRepository(db)

    with pytest.raises(PersistenceError):
        repo.create_due(association.id, "u-1", None, date(2024, 4, 1), MARCH, "pending")

    repo.create_due(association.id, "u-1", Decimal("50"), date(2024, 4, 1), MARCH, "pending")
    db.commit()
    assert db.query(MemberDue).count() == 1


def test_read_failures_raise_persistence_error(db, association):
    db.execute(text("DROP TABLE member_due"))
    repo = DueRepository(db)

    with pytest.raises(PersistenceError):
        repo.find_in_period(association.id, "u-1", MARCH)
    with pytest.raises(PersistenceError):
        repo.get_dues_by_member("u-1")


def test_dues_by_association_include_member_name(db, association):
    repo = DueRepository(db)
    repo.create_due(association.id, "u-1", Decimal("50"), date(2024, 4, 1), MARCH, "pending")
    repo.create_due(
        association.id, "u-1", Decimal("50"), date(2024, 3, 1), DuesPeriod(date(2024, 2, 2), date(2024, 3, 1)), "paid"
    )
    db.commit()

    rows = repo.get_dues_by_association(association.id)

    assert [due.due_date for due, _ in rows] == [date(2024, 4, 1), date(2024, 3, 1)]
    assert {name for _, name in rows} == {"Esi Member"}


def test_record_income_is_idempotent_per_due(db, association):
    due = DueRepository(db).create_due(association.id, "u-1", Decimal("50"), date(2024, 4, 1), MARCH, "paid")
    ledger = IncomeRepository(db)

    ledger.record_income(IncomeEntry(association.id, Decimal("50"), "u-1", "cash", due.id))
    ledger.record_income(IncomeEntry(association.id, Decimal("55"), "u-1", "transfer", due.id))
    db.commit()

    rows = db.query(DuesIncome).all()
    assert len(rows) == 1
    assert rows[0].amount == Decimal("55")
    assert rows[0].payment_method == "transfer"
    assert rows[0].category == "Member Dues"
    assert rows[0].description == "Dues payment from Esi Member"
