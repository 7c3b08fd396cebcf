from __future__ import annotations

import json
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.accounts import models as account_models
from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.settings import backup


def _create_user(db, *, email="clerk@example.com", branch=None):
    user = account_models.User(
        email=email,
        name="Clerk",
        hashed_password="$argon2id$original-hash",
        branch_id=branch.id if branch else None,
    )
    db.add(user)
    db.commit()
    return user


def _seed_books(db):
    branch = branch_models.Branch(name="Harbour", code="HRB", opening_cash=Decimal("0"))
    bank = bank_models.Bank(name="Union", opening_balance=Decimal("500"))
    db.add_all([branch, bank])
    db.flush()
    bank_services.record_transaction(
        db,
        bank_id=bank.id,
        type=bank_models.BankTransactionType.DEPOSIT,
        amount=Decimal("40"),
        reference="sale-1",
    )
    db.commit()
    return branch, bank


def _exported(db) -> dict:
    return json.loads(json.dumps(backup.build_backup_payload(db), default=backup._serialize_value))


def test_backup_exports_users_without_password_hashes(db_session):
    branch, _ = _seed_books(db_session)
    _create_user(db_session, branch=branch)

    payload = _exported(db_session)

    assert payload["exportedAt"].endswith("Z")
    [user] = payload["tables"]["users"]
    assert set(user) == set(backup.USER_BACKUP_COLUMNS)
    assert user["branch_id"] == branch.id
    assert payload["tables"]["bank_transactions"][0]["type"] == "deposit"


def test_restore_round_trip_replaces_business_data(db_session):
    branch, bank = _seed_books(db_session)
    user = _create_user(db_session, branch=branch)
    payload = _exported(db_session)

    db_session.query(bank_models.BankTransaction).delete()
    db_session.add(bank_models.Bank(name="Scratch", opening_balance=Decimal("1")))
    db_session.commit()

    result = backup.restore_backup(db_session, payload=payload, actor_user_id=None)
    db_session.commit()
    db_session.expire_all()

    assert result["ok"] is True
    assert result["message"] == backup.RESTORE_MESSAGE
    assert result["restored"]["banks"] == 1
    assert result["restored"]["bank_transactions"] == 1
    assert [b.name for b in db_session.query(bank_models.Bank).all()] == ["Union"]
    assert bank_services.bank_balance(db_session, bank.id) == Decimal("540.00")

    restored_user = db_session.get(account_models.User, user.id)
    assert restored_user.hashed_password == "$argon2id$original-hash"
    assert restored_user.branch_id == branch.id


def test_restore_keeps_users_missing_from_backup(db_session):
    _seed_books(db_session)
    payload = _exported(db_session)
    late = _create_user(db_session, email="late@example.com")

    backup.restore_backup(db_session, payload=payload, actor_user_id=None)
    db_session.commit()

    assert db_session.query(account_models.User).filter_by(id=late.id).count() == 1


def test_restore_clears_branch_missing_from_backup(db_session):
    branch = branch_models.Branch(name="Closed", code="CLS", opening_cash=Decimal("0"))
    db_session.add(branch)
    db_session.commit()
    user = _create_user(db_session, branch=branch)

    backup.restore_backup(
        db_session,
        payload={"exportedAt": "2024-05-01T00:00:00Z", "tables": {"branches": []}},
        actor_user_id=None,
    )
    db_session.commit()
    db_session.expire_all()

    assert db_session.query(branch_models.Branch).count() == 0
    assert db_session.get(account_models.User, user.id).branch_id is None


@pytest.mark.parametrize("payload", [None, [], {"exportedAt": "2024-05-01"}, {"tables": []}])
def test_restore_requires_tables(db_session, payload):
    with pytest.raises(HTTPException) as exc:
        backup.restore_backup(db_session, payload=payload, actor_user_id=None)
    assert exc.value.status_code == 400
    assert exc.value.detail == backup.INVALID_BACKUP_DETAIL


def test_sequence_reset_covers_integer_ids_only():
    statements = backup.sequence_reset_statements(backup.RESTORE_ORDER)

    assert (
        "SELECT setval(pg_get_serial_sequence('branches', 'id'), "
        "COALESCE((SELECT MAX(id) FROM branches), 0) + 1, false)"
    ) in statements
    assert any("'attachments'" in statement for statement in statements)
    assert not any("'system_settings'" in statement for statement in statements)
    assert not any("'login_history'" in statement for statement in statements)
