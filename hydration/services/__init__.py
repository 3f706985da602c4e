from hydration.services import (
    task_state_machine,
    task_store,
    user_service,
    water_task_service,
    expiration_service,
    reconciliation_service,
)


__all__ = [
    "expiration_service",
    "reconciliation_service",
    "task_state_machine",
    "task_store",
    "user_service",
    "water_task_service",
]
