"""Tests for activity logging and the admin activity log endpoint."""

import uuid
from unittest.mock import AsyncMock, MagicMock

from workorders.models import ActivityAction, ActivityEntityType, ActivityLog
from workorders.services.activity_log import (
    ActivityLogFilters,
    get_activity_logs,
    log_activity,
)


class TestLogActivity:
    async def test_adds_entry_and_flushes(self):
        mock_db = AsyncMock()
        mock_db.add = MagicMock()
        user_id = uuid.uuid4()
        entity_id = uuid.uuid4()

        await log_activity(
            mock_db,
            user_id=user_id,
            action=ActivityAction.DELETE,
            entity_type=ActivityEntityType.WORK_ORDER,
            entity_id=entity_id,
            description="Deleted work order WO-1",
            old_values={"work_order_number": "WO-1"},
            ip_address="10.0.0.1",
        )

        entry = mock_db.add.call_args.args[0]
        assert isinstance(entry, ActivityLog)
        assert entry.user_id == user_id
        assert entry.action is ActivityAction.DELETE
        assert entry.entity_id == entity_id
        assert entry.old_values == {"work_order_number": "WO-1"}
        assert entry.ip_address == "10.0.0.1"
        mock_db.flush.assert_awaited_once()

    async def test_never_raises(self):
        mock_db = AsyncMock()
        mock_db.add = MagicMock()
        mock_db.expunge = MagicMock()
        mock_db.flush.side_effect = RuntimeError("DB down")

        await log_activity(
            mock_db,
            user_id=None,
            action=ActivityAction.CREATE,
            entity_type=ActivityEntityType.INVOICE,
            entity_id=uuid.uuid4(),
            description="Created invoice",
        )

        mock_db.expunge.assert_called_once()


async def seed_logs(db_session, admin, staff):
    wo_id = uuid.uuid4()
    for user, action, entity_type, entity_id in [
        (admin, ActivityAction.CREATE, ActivityEntityType.WORK_ORDER, wo_id),
        (admin, ActivityAction.DELETE, ActivityEntityType.WORK_ORDER, wo_id),
        (staff, ActivityAction.LOGIN, ActivityEntityType.USER, staff.id),
    ]:
        await log_activity(
            db_session,
            user_id=user.id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{action.value} {entity_type.value}",
        )
    await db_session.commit()
    return wo_id


class TestGetActivityLogs:
    async def test_filters(self, db_session, admin_user, staff_user):
        wo_id = await seed_logs(db_session, admin_user, staff_user)

        logs, total = await get_activity_logs(db_session)
        assert total == 3

        logs, total = await get_activity_logs(
            db_session, ActivityLogFilters(user_id=staff_user.id)
        )
        assert total == 1
        assert logs[0].action is ActivityAction.LOGIN

        logs, total = await get_activity_logs(
            db_session,
            ActivityLogFilters(entity_type=ActivityEntityType.WORK_ORDER, entity_id=wo_id),
        )
        assert total == 2

        logs, total = await get_activity_logs(
            db_session, ActivityLogFilters(action=ActivityAction.DELETE)
        )
        assert [entry.entity_id for entry in logs] == [wo_id]

    async def test_limit_keeps_total(self, db_session, admin_user, staff_user):
        await seed_logs(db_session, admin_user, staff_user)

        logs, total = await get_activity_logs(db_session, ActivityLogFilters(limit=2))

        assert len(logs) == 2
        assert total == 3


class TestActivityLogEndpoint:
    async def test_admin_can_list(
        self, client, db_session, admin_user, staff_user, admin_headers
    ):
        await seed_logs(db_session, admin_user, staff_user)

        response = await client.get(
            "/api/activity-logs",
            params={"action": "login"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["logs"][0]["entity_type"] == "User"
        assert data["logs"][0]["user"]["email"] == staff_user.email

    async def test_staff_forbidden(self, client, staff_headers):
        response = await client.get("/api/activity-logs", headers=staff_headers)

        assert response.status_code == 403

    async def test_unauthenticated(self, client):
        response = await client.get("/api/activity-logs")

        assert response.status_code == 401
