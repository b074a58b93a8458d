"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from dues_service.config import settings
from dues_service.domain.engine import DuesPeriodEngine, utc_now
from dues_service.infrastructure.clients.notifier import WebhookNotifier
from dues_service.infrastructure.database.repositories import DueRepository, IncomeRepository
from dues_service.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_acting_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity, set by the authenticating gateway in front of this service"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")
    return x_user_id


def get_clock() -> Callable[[], datetime]:
    """Time source for due dates and payment timestamps"""
    return utc_now


def get_notifier() -> WebhookNotifier:
    """Provide dues event notifier instance"""
    return WebhookNotifier()


def get_dues_engine(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> DuesPeriodEngine:
    """Dues engine bound to the request's database session"""
    return DuesPeriodEngine(
        store=DueRepository(db),
        ledger=IncomeRepository(db),
        repay_policy=settings.repay_policy,
        clock=clock,
    )
