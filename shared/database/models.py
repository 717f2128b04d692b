"""Modelos SQLAlchemy"""
from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint, Index, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from shared.database.connection import Base


USER_ROLES = ("admin", "staff")
TICKET_TYPES = ("vip", "general", "invitacion")
GUEST_STATUSES = ("pendiente", "ingresado", "cancelado")


def _in_clause(column: str, values) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(_in_clause("role", USER_ROLES), name="ck_users_role"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, server_default="staff")  # admin, staff
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relaciones
    guests = relationship("Guest", back_populates="creator")


class Guest(Base):
    __tablename__ = "guests"
    __table_args__ = (
        CheckConstraint(_in_clause("ticket_type", TICKET_TYPES), name="ck_guests_ticket_type"),
        CheckConstraint(_in_clause("status", GUEST_STATUSES), name="ck_guests_status"),
        # Regalo solo para entradas de invitación
        CheckConstraint("gift IS NULL OR ticket_type = 'invitacion'", name="ck_guests_gift_invitacion"),
        # entry_time existe si y solo si el invitado ingresó
        CheckConstraint(
            "(status = 'ingresado' AND entry_time IS NOT NULL) OR "
            "(status <> 'ingresado' AND entry_time IS NULL)",
            name="ck_guests_entry_time_status",
        ),
        Index("ix_guests_status", "status"),
        Index("ix_guests_ticket_type", "ticket_type"),
        Index("ix_guests_created_by", "created_by"),
        Index("ix_guests_email", "email"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    ticket_type = Column(String, nullable=False)  # vip, general, invitacion
    qr_code = Column(String, unique=True, nullable=False)
    status = Column(String, nullable=False, server_default="pendiente")  # pendiente, ingresado, cancelado
    gift = Column(String, nullable=True)
    entry_time = Column(DateTime(timezone=True), nullable=True)  # Cuando ingresó
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relaciones
    creator = relationship("User", back_populates="guests")
