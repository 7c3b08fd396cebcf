from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from finsuite.database import Base
from finsuite.utils.identifiers import generate_uuid7, generate_user_id


def _utcnow() -> datetime:
    return datetime.utcnow()


class AccountRole(str, enum.Enum):
    """Roles used across the suite.

    Super admins may do anything; auditors are strictly read-only.
    """

    SUPER_ADMIN = "SUPER_ADMIN"
    FINANCE_MANAGER = "FINANCE_MANAGER"
    BRANCH_MANAGER = "BRANCH_MANAGER"
    DATA_ENTRY_OPERATOR = "DATA_ENTRY_OPERATOR"
    AUDITOR = "AUDITOR"


ROLE_CATALOGUE = {
    AccountRole.SUPER_ADMIN: ("Super Admin", "all"),
    AccountRole.FINANCE_MANAGER: (
        "Finance Manager",
        "branches,sales,purchases,expenses,bank,cash,reports",
    ),
    AccountRole.BRANCH_MANAGER: (
        "Branch Manager",
        "branch_sales,branch_expenses,branch_cash",
    ),
    AccountRole.DATA_ENTRY_OPERATOR: ("Data Entry Operator", "sales,expenses,data_entry"),
    AccountRole.AUDITOR: ("Auditor", "read_only"),
}


class User(Base):
    """Login account. Branch-bound roles carry a branch_id."""

    __tablename__ = "users"
    __table_args__ = (Index("idx_users_role_active", "role", "is_active"),)

    id = Column(String(36), primary_key=True, default=generate_user_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        Enum(AccountRole, name="account_role_enum", native_enum=False),
        nullable=False,
        default=AccountRole.DATA_ENTRY_OPERATOR,
        index=True,
    )
    branch_id = Column(
        Integer,
        ForeignKey("branches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    @property
    def is_superuser(self) -> bool:
        return self.role == AccountRole.SUPER_ADMIN

    @property
    def is_auditor(self) -> bool:
        return self.role == AccountRole.AUDITOR

    @property
    def role_name(self) -> str:
        return ROLE_CATALOGUE[self.role][0]

    @property
    def permissions(self) -> str:
        return ROLE_CATALOGUE[self.role][1]

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User id={self.id} email={self.email} role={self.role}>"


class LoginHistory(Base):
    __tablename__ = "login_history"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ip = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    login_at = Column(DateTime, nullable=False, default=_utcnow, index=True)
