from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class SalaryStatus(str, enum.Enum):
    PROCESSED = "processed"
    PARTIAL = "partial"
    PAID = "paid"


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)
    fixed_salary = Column(Numeric(12, 2), nullable=False, default=0)
    commission_rate = Column(Numeric(6, 2), nullable=False, default=0)
    contact = Column(String(128), nullable=True)
    joined_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    salary_records = relationship(
        "SalaryRecord",
        back_populates="staff",
        cascade="all, delete-orphan",
        order_by="SalaryRecord.month_year.desc()",
    )


class SalaryRecord(Base):
    __tablename__ = "salary_records"
    __table_args__ = (
        UniqueConstraint("staff_id", "month_year", name="uq_salary_records_staff_month"),
    )

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    month_year = Column(String(7), nullable=False, index=True)  # YYYY-MM
    base_salary = Column(Numeric(12, 2), nullable=False, default=0)
    commission = Column(Numeric(12, 2), nullable=False, default=0)
    advances = Column(Numeric(12, 2), nullable=False, default=0)
    deductions = Column(Numeric(12, 2), nullable=False, default=0)
    net_salary = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(
        value_enum(SalaryStatus, "salary_status_enum"),
        nullable=False,
        default=SalaryStatus.PROCESSED,
    )
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    staff = relationship("Staff", back_populates="salary_records")
