# src/sm_offer/infrastructure/db_models.py
"""SQLAlchemy ORM model for the offers table (DDL reference only; queries use raw SQL)."""
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from src.sm_common.database import Base


class OfferORM(Base):
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    request_id: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(64), nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    timeline_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    timeline_duration: Mapped[str] = mapped_column(String(100), nullable=False)
    scope_of_work: Mapped[str] = mapped_column(Text, nullable=False)
    materials_included: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    warranty: Mapped[str] = mapped_column(String(500), nullable=False, default="No warranty")
    deposit_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    milestone_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    final_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
