"""
Full JSON backup and restore of business data.

Users are exported without password hashes and are never touched by a
restore beyond keeping their branch assignment valid; every other table is
replaced wholesale.
"""

from __future__ import annotations

import enum
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, inspect, text
from sqlalchemy.orm import Session

from finsuite.apps.accounts import models as account_models
from finsuite.apps.attachments import models as attachment_models
from finsuite.apps.audit import models as audit_models
from finsuite.apps.audit import services as audit_services
from finsuite.apps.banks import models as bank_models
from finsuite.apps.branches import models as branch_models
from finsuite.apps.cash import models as cash_models
from finsuite.apps.expenses import models as expense_models
from finsuite.apps.inventory import models as inventory_models
from finsuite.apps.payments import models as payment_models
from finsuite.apps.purchases import models as purchase_models
from finsuite.apps.receivables import models as receivable_models
from finsuite.apps.rent_bills import models as rent_bill_models
from finsuite.apps.sales import models as sales_models
from finsuite.apps.staff import models as staff_models

from . import models

logger = logging.getLogger(__name__)

RESTORE_MESSAGE = "Restore complete. Users and roles were not changed."
INVALID_BACKUP_DETAIL = "Invalid backup. Send JSON with { exportedAt, tables: { ... } }."

# Parents before children; deletes run in reverse.
RESTORE_ORDER: Sequence[Any] = (
    branch_models.Branch,
    expense_models.ExpenseCategory,
    bank_models.Bank,
    purchase_models.Supplier,
    receivable_models.Customer,
    inventory_models.Product,
    models.SystemSetting,
    sales_models.Sale,
    sales_models.SaleBankSplit,
    receivable_models.Receivable,
    receivable_models.ReceivableRecovery,
    purchase_models.Purchase,
    expense_models.Expense,
    cash_models.CashEntry,
    bank_models.BankTransaction,
    staff_models.Staff,
    staff_models.SalaryRecord,
    inventory_models.InventorySale,
    rent_bill_models.RentBill,
    attachment_models.Attachment,
    payment_models.Payment,
    audit_models.ActivityLog,
    account_models.LoginHistory,
)

USER_BACKUP_COLUMNS = ("id", "email", "name", "role", "branch_id", "is_active", "created_at", "updated_at")

# Tables whose rows point at users and must be dropped when the user is gone.
_USER_OWNED = {account_models.LoginHistory.__tablename__: "user_id"}


def _serialize_value(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _model_to_dict(obj: Any, columns: Optional[Sequence[str]] = None) -> dict:
    mapper = inspect(obj).mapper
    data: Dict[str, Any] = {}
    for column in mapper.column_attrs:
        key = column.key
        if columns is not None and key not in columns:
            continue
        name = column.columns[0].name
        data[name] = _serialize_value(getattr(obj, key))
    return data


def build_backup_payload(db: Session) -> dict:
    tables: Dict[str, List[dict]] = {
        account_models.User.__tablename__: [
            _model_to_dict(user, USER_BACKUP_COLUMNS)
            for user in db.query(account_models.User).order_by(account_models.User.created_at).all()
        ]
    }
    for model in RESTORE_ORDER:
        rows = db.query(model).all()
        tables[model.__tablename__] = [_model_to_dict(row) for row in rows]
    return {"exportedAt": datetime.utcnow().isoformat() + "Z", "tables": tables}


def backup_response(db: Session) -> StreamingResponse:
    payload = build_backup_payload(db)
    body = json.dumps(payload, default=_serialize_value, indent=2).encode("utf-8")
    filename = f"finance-backup-{date.today().isoformat()}.json"
    return StreamingResponse(
        iter([body]),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _coerce(column: Any, value: Any) -> Any:
    if value is None:
        return None
    column_type = column.type
    if isinstance(column_type, DateTime) and isinstance(value, str):
        return datetime.fromisoformat(value.rstrip("Z").replace(" ", "T"))
    if isinstance(column_type, Date) and isinstance(value, str):
        return date.fromisoformat(value[:10])
    if isinstance(column_type, Numeric):
        return Decimal(str(value))
    if isinstance(column_type, Boolean):
        return bool(value)
    if isinstance(column_type, Integer) and isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return value


def _prepare_rows(model: Any, rows: List[Any], user_ids: set) -> Tuple[List[dict], int]:
    table = model.__table__
    columns = {column.name: column for column in table.columns}
    owner_column = _USER_OWNED.get(table.name)
    prepared: List[dict] = []
    skipped = 0
    for raw in rows:
        if not isinstance(raw, dict):
            skipped += 1
            continue
        if owner_column and raw.get(owner_column) not in user_ids:
            skipped += 1
            continue
        record = {
            name: _coerce(columns[name], value)
            for name, value in raw.items()
            if name in columns
        }
        if record:
            prepared.append(record)
    return prepared, skipped


def sequence_reset_statements(models_: Sequence[Any]) -> List[str]:
    """
    Postgres statements moving each integer id sequence past the restored rows.

    Explicit-id inserts leave `SERIAL` sequences where they were.
    """
    statements = []
    for model in models_:
        primary_key = list(model.__table__.primary_key.columns)
        if len(primary_key) != 1 or not isinstance(primary_key[0].type, Integer):
            continue
        table, column = model.__tablename__, primary_key[0].name
        statements.append(
            f"SELECT setval(pg_get_serial_sequence('{table}', '{column}'), "
            f"COALESCE((SELECT MAX({column}) FROM {table}), 0) + 1, false)"
        )
    return statements


def _user_branch_assignments(db: Session) -> Dict[str, int]:
    rows = db.query(account_models.User.id, account_models.User.branch_id).all()
    return {user_id: branch_id for user_id, branch_id in rows if branch_id is not None}


def _reapply_user_branches(db: Session, assignments: Dict[str, int]) -> None:
    """Put users back on their branch after the branches table was replaced."""
    if not assignments:
        return
    existing = {branch_id for (branch_id,) in db.query(branch_models.Branch.id).all()}
    for user_id, branch_id in assignments.items():
        if branch_id not in existing:
            logger.warning(
                "User branch missing from backup; assignment cleared",
                extra={"user_id": user_id, "branch_id": branch_id},
            )
            branch_id = None
        # Explicit UPDATE: the FK may have nulled the column behind the session.
        db.query(account_models.User).filter(account_models.User.id == user_id).update(
            {account_models.User.branch_id: branch_id}, synchronize_session="fetch"
        )


def restore_backup(
    db: Session,
    *,
    payload: Any,
    actor_user_id: Optional[str],
) -> dict:
    if not isinstance(payload, dict) or not isinstance(payload.get("tables"), dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_BACKUP_DETAIL)
    tables = payload["tables"]
    user_ids = {user_id for (user_id,) in db.query(account_models.User.id).all()}
    assignments = _user_branch_assignments(db)

    for model in reversed(RESTORE_ORDER):
        db.query(model).delete(synchronize_session=False)
    db.flush()

    restored: Dict[str, int] = {}
    for model in RESTORE_ORDER:
        rows = tables.get(model.__tablename__)
        if not isinstance(rows, list) or not rows:
            continue
        prepared, skipped = _prepare_rows(model, rows, user_ids)
        if skipped:
            logger.warning(
                "Skipped backup rows during restore",
                extra={"table": model.__tablename__, "skipped": skipped},
            )
        if prepared:
            db.execute(model.__table__.insert(), prepared)
        restored[model.__tablename__] = len(prepared)
    db.flush()

    if db.get_bind().dialect.name == "postgresql":
        for statement in sequence_reset_statements(RESTORE_ORDER):
            db.execute(text(statement))
    _reapply_user_branches(db, assignments)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="settings",
        action="restore",
        entity_id="backup",
        metadata={"restored": restored, "exportedAt": payload.get("exportedAt")},
        critical=True,
    )
    return {"ok": True, "message": RESTORE_MESSAGE, "restored": restored}
