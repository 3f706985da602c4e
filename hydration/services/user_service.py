"""User service for subscription management and reminder bookkeeping."""

import logging
from datetime import datetime

from hydration.core import clock, db_client
from hydration.core.config import constants
from hydration.core.db_client import sanitize_param
from hydration.core.errors import ErrorCode, NotFoundError, require_field
from hydration.core.logging import span
from hydration.domain.user import User


logger = logging.getLogger(__name__)

COLLECTION = "users"


async def get_user(*, openid: str) -> User | None:
    """Look up a user by openid."""
    record = await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=f'openid = "{sanitize_param(openid)}"',
    )
    return User.model_validate(record) if record else None


async def list_users(*, subscribed: bool | None = None) -> list[User]:
    """List users in insertion order, optionally filtered by subscription flag."""
    filter_query = ""
    if subscribed is not None:
        filter_query = f'subscribed = "{str(subscribed).lower()}"'

    records = await db_client.list_all_records(collection=COLLECTION, filter_query=filter_query, sort="+id")
    return [User.model_validate(record) for record in records]


async def _create_user(*, openid: str, nickname: str | None, subscribed: bool) -> User:
    record = await db_client.create_record(
        collection=COLLECTION,
        data={
            "openid": openid,
            "nickname": (nickname or "").strip() or constants.DEFAULT_NICKNAME,
            "subscribed": subscribed,
            "created_at": clock.now(),
            "last_reminded": None,
        },
    )
    logger.info("Created user", extra={"openid": openid, "subscribed": subscribed})
    return User.model_validate(record)


async def login_user(*, openid: str, nickname: str | None = None) -> User:
    """Register a user on first login (unsubscribed), refreshing the nickname otherwise."""
    with span("user_service.login_user"):
        openid = require_field(openid, "openid")
        user = await get_user(openid=openid)

        if user is None:
            return await _create_user(openid=openid, nickname=nickname, subscribed=False)

        if nickname and nickname.strip():
            record = await db_client.update_record(
                collection=COLLECTION,
                record_id=user.id,
                data={"nickname": nickname.strip()},
            )
            return User.model_validate(record)

        return user


async def subscribe(*, openid: str | None, nickname: str | None = None) -> User:
    """Subscribe a user to reminders, creating them if needed."""
    with span("user_service.subscribe"):
        openid = require_field(openid, "openid")
        user = await get_user(openid=openid)

        if user is None:
            return await _create_user(openid=openid, nickname=nickname, subscribed=True)

        data: dict[str, object] = {"subscribed": True}
        if nickname and nickname.strip():
            data["nickname"] = nickname.strip()

        record = await db_client.update_record(collection=COLLECTION, record_id=user.id, data=data)
        logger.info("User subscribed", extra={"openid": openid})
        return User.model_validate(record)


async def unsubscribe(*, openid: str | None) -> User:
    """Stop reminders for a user.

    Raises:
        NotFoundError: If the user does not exist
    """
    with span("user_service.unsubscribe"):
        openid = require_field(openid, "openid")
        user = await get_user(openid=openid)
        if user is None:
            raise NotFoundError("User not found", code=ErrorCode.ERR_USER_NOT_FOUND)

        record = await db_client.update_record(collection=COLLECTION, record_id=user.id, data={"subscribed": False})
        logger.info("User unsubscribed", extra={"openid": openid})
        return User.model_validate(record)


async def mark_reminded(*, user_id: str, at: datetime | None = None) -> None:
    """Record when a user was last sent a reminder."""
    await db_client.update_record(
        collection=COLLECTION,
        record_id=user_id,
        data={"last_reminded": at or clock.now()},
    )
