"""Tests for the HTTP routes with the service layer mocked."""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from hydration.core.db_client import DatabaseError
from hydration.core.errors import ForbiddenError, InvalidStateError, NotFoundError, UpstreamServiceError
from hydration.domain.user import User
from hydration.domain.water_task import TaskStatus, WaterTask
from hydration.interface.wechat_client import LoginSession
from hydration.main import app
from hydration.models.service_models import TodayStats, TodayStatus, TodayWater
from hydration.services import user_service, water_task_service
from tests.unit.helpers import civil


pytestmark = pytest.mark.unit


@pytest.fixture
def client() -> TestClient:
    """Create a test client for FastAPI app."""
    return TestClient(app)


def make_task(task_id: str = "5", status: TaskStatus = TaskStatus.PENDING) -> WaterTask:
    return WaterTask(
        id=task_id,
        openid="o1",
        scheduled_time=civil(2024, 6, 15, 9, 30),
        status=status,
        water_amount=250,
        completed_at=civil(2024, 6, 15, 9, 41) if status == TaskStatus.COMPLETED else None,
        created_at=civil(2024, 6, 15, 0, 0),
    )


def make_user(openid: str = "o1", *, subscribed: bool = True) -> User:
    return User(id="1", openid=openid, nickname="Ann", subscribed=subscribed, created_at=civil(2024, 6, 1, 8, 0))


class TestCompleteRoute:
    def test_complete_given_task(self, client: TestClient) -> None:
        mock_complete = AsyncMock(return_value=make_task(status=TaskStatus.COMPLETED))

        with patch.object(water_task_service, "complete_task", mock_complete):
            response = client.post("/api/water-task/complete", json={"openid": "o1", "taskId": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["task"]["status"] == "completed"
        assert body["task"]["completedAt"] == "2024-06-15 09:41:00"
        mock_complete.assert_awaited_once_with(openid="o1", task_id="5")

    def test_complete_without_task_id(self, client: TestClient) -> None:
        mock_complete = AsyncMock(return_value=make_task(status=TaskStatus.COMPLETED))

        with patch.object(water_task_service, "complete_task", mock_complete):
            response = client.post("/api/water-task/complete", json={"openid": "o1"})

        assert response.status_code == 200
        mock_complete.assert_awaited_once_with(openid="o1", task_id=None)

    def test_missing_openid(self, client: TestClient) -> None:
        response = client.post("/api/water-task/complete", json={})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required parameter: openid",
            "code": "ERR_VALIDATION",
        }

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (NotFoundError("Task not found: 5"), 404),
            (ForbiddenError("Task 5 does not belong to this user"), 403),
            (InvalidStateError("Cannot complete: task 5 is already missed"), 400),
        ],
    )
    def test_domain_errors(self, client: TestClient, error: Exception, status_code: int) -> None:
        with patch.object(water_task_service, "complete_task", AsyncMock(side_effect=error)):
            response = client.post("/api/water-task/complete", json={"openid": "o1", "taskId": "5"})

        assert response.status_code == status_code
        assert response.json()["success"] is False
        assert response.json()["error"] == str(error)

    def test_storage_error_is_generic_500(self, client: TestClient) -> None:
        failing = AsyncMock(side_effect=DatabaseError("disk I/O error at /var/data"))

        with patch.object(water_task_service, "complete_task", failing):
            response = client.post("/api/water-task/complete", json={"openid": "o1"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Storage error", "code": "ERR_STORAGE"}


class TestCancelRoute:
    def test_cancel(self, client: TestClient) -> None:
        mock_cancel = AsyncMock(return_value=make_task())

        with patch.object(water_task_service, "cancel_completion", mock_cancel):
            response = client.post("/api/water-task/cancel", json={"openid": "o1", "taskId": "5"})

        assert response.status_code == 200
        assert response.json()["task"]["status"] == "pending"
        assert response.json()["task"]["completedAt"] is None
        mock_cancel.assert_awaited_once_with(openid="o1", task_id="5")

    def test_missing_task_id(self, client: TestClient) -> None:
        response = client.post("/api/water-task/cancel", json={"openid": "o1"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameter: taskId"


class TestListRoute:
    def test_list_for_date(self, client: TestClient) -> None:
        mock_list = AsyncMock(return_value=[make_task("1"), make_task("2", TaskStatus.MISSED)])

        with patch.object(water_task_service, "list_tasks", mock_list):
            response = client.get("/api/water-task/list/o1", params={"date": "2024-06-15"})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [t["id"] for t in body["tasks"]] == ["1", "2"]
        mock_list.assert_awaited_once_with(openid="o1", day=date(2024, 6, 15))

    def test_list_without_date(self, client: TestClient) -> None:
        mock_list = AsyncMock(return_value=[])

        with patch.object(water_task_service, "list_tasks", mock_list):
            response = client.get("/api/water-task/list/o1")

        assert response.json() == {"success": True, "count": 0, "tasks": []}
        mock_list.assert_awaited_once_with(openid="o1", day=None)

    def test_bad_date(self, client: TestClient) -> None:
        mock_list = AsyncMock()

        with patch.object(water_task_service, "list_tasks", mock_list):
            response = client.get("/api/water-task/list/o1", params={"date": "15/06/2024"})

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VALIDATION"
        mock_list.assert_not_awaited()


def test_today_status(client: TestClient) -> None:
    status = TodayStatus(
        stats=TodayStats(
            total_tasks=4,
            completed_tasks=2,
            missed_tasks=1,
            pending_tasks=1,
            total_water=500,
            completion_rate=50,
        ),
        tasks=[make_task()],
    )

    with patch.object(water_task_service, "get_today_status", AsyncMock(return_value=status)):
        response = client.get("/api/water-task/today-status/o1")

    assert response.status_code == 200
    assert response.json()["todayStats"] == {
        "totalTasks": 4,
        "completedTasks": 2,
        "missedTasks": 1,
        "pendingTasks": 1,
        "totalWater": 500,
        "completionRate": 50,
    }
    assert len(response.json()["tasks"]) == 1


def test_today_water(client: TestClient) -> None:
    water = TodayWater(total_water=500, completed_count=2, tasks=[])

    with patch.object(water_task_service, "get_today_water", AsyncMock(return_value=water)):
        response = client.get("/api/water-task/today-water/o1")

    assert response.json() == {"success": True, "totalWater": 500, "completedCount": 2, "tasks": []}


def test_delete_all(client: TestClient) -> None:
    mock_delete = AsyncMock(return_value=8)

    with patch.object(water_task_service, "delete_all_tasks", mock_delete):
        response = client.delete("/api/water-task/delete/o1")

    assert response.status_code == 200
    assert response.json()["deletedCount"] == 8
    mock_delete.assert_awaited_once_with(openid="o1")


class TestWechatRoutes:
    def test_login(self, client: TestClient) -> None:
        exchange = AsyncMock(return_value=LoginSession(openid="o1", session_key="sk"))
        login_user = AsyncMock(return_value=make_user(subscribed=False))

        with (
            patch("hydration.interface.wechat_router.exchange_login_code", exchange),
            patch.object(user_service, "login_user", login_user),
        ):
            response = client.post("/api/login", json={"code": "c1", "nickname": "Ann"})

        assert response.status_code == 200
        assert response.json() == {"openid": "o1", "subscribed": False, "nickname": "Ann"}
        login_user.assert_awaited_once_with(openid="o1", nickname="Ann")

    def test_login_requires_code(self, client: TestClient) -> None:
        response = client.post("/api/login", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameter: code"

    def test_login_upstream_failure(self, client: TestClient) -> None:
        exchange = AsyncMock(side_effect=UpstreamServiceError("Failed to get openid: invalid code"))

        with patch("hydration.interface.wechat_router.exchange_login_code", exchange):
            response = client.post("/api/login", json={"code": "bad"})

        assert response.status_code == 502
        assert response.json()["code"] == "ERR_UPSTREAM"

    def test_subscribe(self, client: TestClient) -> None:
        subscribe = AsyncMock(return_value=make_user())

        with patch.object(user_service, "subscribe", subscribe):
            response = client.post("/api/wechat/subscribe", json={"openid": "o1", "nickname": "Ann"})

        assert response.status_code == 200
        assert response.json()["user"]["subscribed"] is True
        assert response.json()["user"]["createdAt"] == "2024-06-01 08:00:00"

    def test_unsubscribe_unknown_user(self, client: TestClient) -> None:
        unsubscribe = AsyncMock(side_effect=NotFoundError("User not found", code="ERR_USER_NOT_FOUND"))

        with patch.object(user_service, "unsubscribe", unsubscribe):
            response = client.post("/api/wechat/unsubscribe", json={"openid": "nobody"})

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_USER_NOT_FOUND"

    def test_list_users(self, client: TestClient) -> None:
        list_users = AsyncMock(return_value=[make_user("o1"), make_user("o2")])

        with patch.object(user_service, "list_users", list_users):
            subscribed = client.get("/api/wechat/users")
            everyone = client.get("/api/wechat/allusers")

        assert subscribed.json()["count"] == 2
        assert everyone.json()["count"] == 2
        assert list_users.await_args_list[0].kwargs == {"subscribed": True}
        assert list_users.await_args_list[1].kwargs == {}

    def test_get_missing_user(self, client: TestClient) -> None:
        with patch.object(user_service, "get_user", AsyncMock(return_value=None)):
            response = client.get("/api/wechat/user/nobody")

        assert response.status_code == 404


class TestHealthRoutes:
    def test_index(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert "running" in response.text

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_scheduler_health_degraded_on_failures(self, client: TestClient) -> None:
        job_status = {
            "job_name": "expire_overdue_tasks",
            "last_success": None,
            "last_failure": "2024-06-15 14:05:00",
            "last_error": "db locked",
            "consecutive_failures": 1,
            "success_count": 0,
            "failure_count": 1,
            "currently_running": False,
            "current_run_started": None,
        }

        with patch("hydration.main.job_tracker") as mock_tracker:
            mock_tracker.get_job_status = AsyncMock(return_value=job_status)
            response = client.get("/health/scheduler")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
        assert "water_reminder_0" in response.json()["jobs"]
