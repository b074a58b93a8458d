"""Member dues endpoints - listing, generation and payment recording"""

import uuid
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Request
from sqlalchemy.orm import Session

from dues_service.api.v1.schemas import (
    AssociationDuesResponse,
    DueSchema,
    DuesStatsSchema,
    GenerateDuesResponse,
    MarkPaidRequest,
    MarkPaidResponse,
    MemberDueItem,
    MemberDuesResponse,
    MemberFailureSchema,
)
from dues_service.api.dependencies import get_acting_user_id, get_dues_engine, get_notifier, get_request_id
from dues_service.infrastructure.database.session import get_db
from dues_service.infrastructure.database.repositories import AssociationRepository, DueRepository
from dues_service.infrastructure.clients.notifier import WebhookNotifier
from dues_service.domain.engine import DuesPeriodEngine, summarize_dues
from dues_service.domain.exceptions import (
    ConfigurationError,
    DueAlreadyPaidError,
    InvalidPaymentError,
)
from dues_service.infrastructure.observability.metrics import record_payment, record_reconciliation, record_sweep
from dues_service.infrastructure.observability.logging import log_payment, log_reconciliation

router = APIRouter()

MANAGER_ROLES = ("admin", "moderator")


def _parse_uuid(value: str, kind: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {kind} ID format")


def _due_schema(due, member_name: Optional[str] = None) -> DueSchema:
    return DueSchema(
        id=str(due.id),
        association_id=str(due.association_id),
        member_id=due.member_id,
        member_name=member_name,
        amount=due.amount,
        due_date=due.due_date,
        period_start=due.period_start,
        status=due.status,
        paid_date=due.paid_date,
        paid_amount=due.paid_amount,
        payment_method=due.payment_method,
        notes=due.notes,
    )


@router.get("/associations/{association_id}/dues", response_model=AssociationDuesResponse)
def list_association_dues(
    association_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    user_id: str = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
    engine: DuesPeriodEngine = Depends(get_dues_engine),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    """
    List an association's dues, newest due date first.

    Flow:
    1. Generate the current period's dues for active members (if dues are enabled)
    2. Mark pending dues past their due date as overdue
    3. Return every due with its member's name
    """
    request_id = get_request_id(request)
    association_repo = AssociationRepository(db)
    association = association_repo.get_association(_parse_uuid(association_id, "association"))
    if not association:
        raise HTTPException(status_code=404, detail="Association not found")
    if not association_repo.get_membership(association.id, user_id):
        raise HTTPException(status_code=403, detail="Not a member of this association")

    try:
        rule = association_repo.dues_rule(association)
        report = None
        if rule.enabled:
            report = engine.reconcile_dues(
                association.id, rule, association_repo.get_active_member_ids(association.id)
            )

        rows = DueRepository(db).get_dues_by_association(association.id)
        updated = engine.sweep_overdue(due for due, _ in rows)
        db.commit()

    except ConfigurationError as e:
        db.rollback()
        logging.warning(f"Dues misconfigured: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Listing dues failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_sweep(len(updated))
    if report is not None:
        record_reconciliation(report)
        log_reconciliation(request_id, str(association.id), report)
        if report.generated:
            background_tasks.add_task(
                notifier.notify,
                {
                    "event": "DUES_GENERATED",
                    "association_id": str(association.id),
                    "due_date": report.due_date.isoformat(),
                    "member_ids": [due.member_id for due in report.generated],
                },
            )

    return AssociationDuesResponse(
        association_id=str(association.id),
        dues=[_due_schema(due, member_name) for due, member_name in rows],
    )


@router.post("/associations/{association_id}/dues/generate", response_model=GenerateDuesResponse)
def generate_dues(
    association_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    user_id: str = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
    engine: DuesPeriodEngine = Depends(get_dues_engine),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    """Generate the current period's dues for every active member (admins only)"""
    request_id = get_request_id(request)
    association_repo = AssociationRepository(db)
    association = association_repo.get_association(_parse_uuid(association_id, "association"))
    if not association:
        raise HTTPException(status_code=404, detail="Association not found")
    member = association_repo.get_membership(association.id, user_id)
    if not member or member.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can generate dues")

    try:
        report = engine.reconcile_dues(
            association.id,
            association_repo.dues_rule(association),
            association_repo.get_active_member_ids(association.id),
        )
        db.commit()

    except ConfigurationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_reconciliation(report)
    log_reconciliation(request_id, str(association.id), report)
    if report.generated:
        background_tasks.add_task(
            notifier.notify,
            {
                "event": "DUES_GENERATED",
                "association_id": str(association.id),
                "due_date": report.due_date.isoformat(),
                "member_ids": [due.member_id for due in report.generated],
            },
        )

    return GenerateDuesResponse(
        message="Dues generated successfully" if report.ok else "Dues generated with failures",
        generated_count=len(report.generated),
        existing_count=len(report.existing),
        due_date=report.due_date,
        period_start=report.period.start,
        period_end=report.period.end,
        failures=[MemberFailureSchema(member_id=f.member_id, error=f.error) for f in report.failures],
    )


@router.put("/dues/{due_id}/mark-paid", response_model=MarkPaidResponse)
def mark_due_paid(
    due_id: str,
    request_body: MarkPaidRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    user_id: str = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
    engine: DuesPeriodEngine = Depends(get_dues_engine),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    """
    Record a manual payment against a due (admins and moderators).

    The status change and the dues income entry are committed together.
    """
    request_id = get_request_id(request)
    due = DueRepository(db).get_due(_parse_uuid(due_id, "due"))
    if not due:
        raise HTTPException(status_code=404, detail="Due not found")

    association_repo = AssociationRepository(db)
    association = association_repo.get_association(due.association_id)
    if not association:
        raise HTTPException(status_code=404, detail="Association not found")
    member = association_repo.get_membership(association.id, user_id)
    if not member or member.role not in MANAGER_ROLES:
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    try:
        engine.mark_paid(
            due,
            paid_amount=request_body.paid_amount,
            payment_method=request_body.payment_method,
            notes=request_body.notes,
        )
        db.commit()

    except DueAlreadyPaidError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except InvalidPaymentError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_payment(due.payment_method)
    log_payment(request_id, str(due.id), str(due.paid_amount), due.payment_method or "manual")
    background_tasks.add_task(
        notifier.notify,
        {
            "event": "DUES_PAID",
            "due_id": str(due.id),
            "association_id": str(due.association_id),
            "member_id": due.member_id,
            "paid_amount": str(due.paid_amount),
        },
    )

    return MarkPaidResponse(message="Due marked as paid", due=_due_schema(due))


@router.get("/members/{member_id}/dues", response_model=MemberDuesResponse)
def get_member_dues(
    member_id: str,
    request: Request,
    user_id: str = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
    engine: DuesPeriodEngine = Depends(get_dues_engine),
):
    """
    Retrieve one member's dues across associations with totals.

    Visible to the member themselves, or to an admin or moderator of every
    association the dues belong to.
    """
    dues = DueRepository(db).get_dues_by_member(member_id)

    if member_id != user_id:
        association_repo = AssociationRepository(db)
        for association_id in {due.association_id for due in dues}:
            viewer = association_repo.get_membership(association_id, user_id)
            if not viewer or viewer.role not in MANAGER_ROLES:
                raise HTTPException(status_code=403, detail="Not authorized to view this member's dues")

    try:
        updated = engine.sweep_overdue(dues)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Overdue sweep failed: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")
    record_sweep(len(updated))

    items = [
        MemberDueItem(
            **_due_schema(due).model_dump(),
            association_name=due.association.name,
            currency=due.association.currency,
        )
        for due in dues
    ]
    stats = summarize_dues(dues)

    return MemberDuesResponse(
        member_id=member_id,
        dues=items,
        stats=DuesStatsSchema(
            total=stats.total,
            paid=stats.paid,
            pending=stats.pending,
            overdue=stats.overdue,
            total_amount=stats.total_amount,
            paid_amount=stats.paid_amount,
        ),
    )
