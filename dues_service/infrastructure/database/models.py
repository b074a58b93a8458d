"""SQLAlchemy ORM models for associations, members, dues and dues income"""

import uuid
from sqlalchemy import (
    Column,
    Boolean,
    DateTime,
    Date,
    Integer,
    Numeric,
    ForeignKey,
    Text,
    Index,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Association(Base):
    """Association with its dues settings"""

    __tablename__ = "association"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    currency = Column(Text, nullable=False, default="GHS")

    # Dues settings
    dues_enabled = Column(Boolean, nullable=False, default=False)
    dues_amount = Column(Numeric(12, 2), nullable=True, default=0)
    dues_frequency = Column(Text, nullable=False, default="monthly")
    dues_anchor_day = Column(Integer, nullable=True, default=1)  # Day of period (1-31)
    dues_description = Column(Text, nullable=False, default="Member dues payment")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    members = relationship("Member", back_populates="association", cascade="all, delete-orphan")


class Member(Base):
    """Membership of a user in an association"""

    __tablename__ = "member"
    __table_args__ = (UniqueConstraint("association_id", "user_id", name="uq_member_user"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    association_id = Column(Uuid(as_uuid=True), ForeignKey("association.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="member")  # admin | moderator | member
    status = Column(Text, nullable=False, default="active")  # active | pending | suspended
    joined_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    association = relationship("Association", back_populates="members")


class MemberDue(Base):
    """One member's due for one dues period"""

    __tablename__ = "member_due"
    __table_args__ = (
        UniqueConstraint("association_id", "member_id", "period_start", name="uq_member_due_period"),
        Index("ix_member_due_member_date", "association_id", "member_id", "due_date"),
        Index("ix_member_due_status", "association_id", "status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    association_id = Column(Uuid(as_uuid=True), ForeignKey("association.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Text, nullable=False)  # Member.user_id of the payer
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    period_start = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    paid_date = Column(DateTime(timezone=True), nullable=True)
    paid_amount = Column(Numeric(12, 2), nullable=True)
    payment_method = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    association = relationship("Association")


class DuesIncome(Base):
    """Income booked for a paid due"""

    __tablename__ = "dues_income"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    association_id = Column(Uuid(as_uuid=True), ForeignKey("association.id", ondelete="CASCADE"), nullable=False)
    due_id = Column(Uuid(as_uuid=True), ForeignKey("member_due.id", ondelete="SET NULL"), nullable=True, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payer_id = Column(Text, nullable=False)
    payment_method = Column(Text, nullable=False, default="manual")
    category = Column(Text, nullable=False, default="Member Dues")
    description = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="approved")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
