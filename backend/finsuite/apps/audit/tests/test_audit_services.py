from __future__ import annotations

from finsuite.apps.audit import services as audit_services


def test_log_event_writes_record(db_session):
    event = audit_services.log_event(
        db_session,
        actor_user_id=None,
        module="sales",
        action="create",
        entity_id=12,
        details="2024-03-05",
        metadata={"source": "test"},
    )
    db_session.commit()

    assert event is not None
    assert event.entity_id == "12"
    assert event.metadata_json == {"source": "test"}


def test_list_activity_logs_filters_by_module(db_session):
    for module in ("sales", "banks", "sales"):
        audit_services.log_event(db_session, actor_user_id=None, module=module, action="create")
    db_session.commit()

    rows = audit_services.list_activity_logs(db_session, module="sales")

    assert len(rows) == 2
    assert {row.module for row in rows} == {"sales"}
    assert len(audit_services.list_activity_logs(db_session, limit=1)) == 1
