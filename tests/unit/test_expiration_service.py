"""Tests for the expiration sweep."""

from datetime import timedelta

import pytest

from hydration.domain.water_task import TaskStatus
from hydration.services import expiration_service, task_store, water_task_service
from tests.unit.helpers import FrozenClock, civil


pytestmark = [pytest.mark.unit, pytest.mark.usefixtures("sqlite_db")]


async def test_only_tasks_past_grace_period_expire(frozen_clock: FrozenClock) -> None:
    overdue = await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 13, 44))
    recent = await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 13, 50))

    swept = await expiration_service.sweep_expired_tasks()

    assert swept == 1
    assert (await task_store.get_task(overdue.id)).status == TaskStatus.MISSED
    assert (await task_store.get_task(recent.id)).status == TaskStatus.PENDING


async def test_slot_exactly_at_cutoff_stays_pending(frozen_clock: FrozenClock) -> None:
    task = await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 13, 45))

    assert await expiration_service.sweep_expired_tasks() == 0
    assert (await task_store.get_task(task.id)).status == TaskStatus.PENDING


async def test_second_pass_is_a_no_op(frozen_clock: FrozenClock) -> None:
    await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 9, 30))
    await water_task_service.create_task(openid="o2", scheduled_time=civil(2024, 6, 15, 11, 0))

    assert await expiration_service.sweep_expired_tasks() == 2
    assert await expiration_service.sweep_expired_tasks() == 0
    assert await task_store.count_tasks(status=TaskStatus.MISSED) == 2


async def test_completed_tasks_are_not_expired(frozen_clock: FrozenClock) -> None:
    task = await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 9, 30))
    await water_task_service.complete_task(openid="o1", task_id=task.id)

    assert await expiration_service.sweep_expired_tasks() == 0
    assert (await task_store.get_task(task.id)).status == TaskStatus.COMPLETED


async def test_custom_grace_period(frozen_clock: FrozenClock) -> None:
    await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 13, 58))

    assert await expiration_service.sweep_expired_tasks(grace_period=timedelta(0)) == 1


async def test_failure_on_one_task_does_not_stop_the_sweep(
    frozen_clock: FrozenClock, monkeypatch: pytest.MonkeyPatch
) -> None:
    first = await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 9, 30))
    second = await water_task_service.create_task(openid="o1", scheduled_time=civil(2024, 6, 15, 11, 0))
    real_save_task = task_store.save_task

    async def flaky_save(task, *, expected_status=None):  # noqa: ANN001, ANN202
        if task.id == first.id:
            raise RuntimeError("disk full")
        return await real_save_task(task, expected_status=expected_status)

    monkeypatch.setattr(task_store, "save_task", flaky_save)

    swept = await expiration_service.sweep_expired_tasks()

    assert swept == 1
    assert (await task_store.get_task(first.id)).status == TaskStatus.PENDING
    assert (await task_store.get_task(second.id)).status == TaskStatus.MISSED
