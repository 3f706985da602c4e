"""HTTP routes for login and reminder subscriptions."""

import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from hydration.core.errors import ErrorCode, NotFoundError, require_field
from hydration.interface.wechat_client import exchange_login_code
from hydration.services import user_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wechat", tags=["wechat"])
login_router = APIRouter(prefix="/api", tags=["login"])


class SubscriptionRequest(BaseModel):
    openid: str | None = None
    nickname: str | None = None


class LoginRequest(BaseModel):
    code: str | None = None
    nickname: str | None = None


@login_router.post("/login")
async def login(request: LoginRequest) -> dict[str, Any]:
    """Exchange a wx.login code and register the user on first login."""
    code = require_field(request.code, "code")
    session = await exchange_login_code(code)
    user = await user_service.login_user(openid=session.openid, nickname=request.nickname)
    return {"openid": user.openid, "subscribed": user.subscribed, "nickname": user.nickname}


@router.post("/subscribe")
async def subscribe(request: SubscriptionRequest) -> dict[str, Any]:
    user = await user_service.subscribe(openid=request.openid, nickname=request.nickname)
    return {
        "success": True,
        "message": f"User {user.nickname} with OpenID {user.openid} subscribed successfully",
        "user": user.to_response(),
    }


@router.post("/unsubscribe")
async def unsubscribe(request: SubscriptionRequest) -> dict[str, Any]:
    user = await user_service.unsubscribe(openid=request.openid)
    return {
        "success": True,
        "message": f"User with OpenID {user.openid} unsubscribed successfully",
        "user": user.to_response(),
    }


@router.get("/users")
async def list_subscribed_users() -> dict[str, Any]:
    users = await user_service.list_users(subscribed=True)
    return {"success": True, "count": len(users), "users": [user.to_response() for user in users]}


@router.get("/allusers")
async def list_all_users() -> dict[str, Any]:
    users = await user_service.list_users()
    return {"success": True, "count": len(users), "users": [user.to_response() for user in users]}


@router.get("/user/{openid}")
async def get_user(openid: str) -> dict[str, Any]:
    user = await user_service.get_user(openid=openid)
    if user is None:
        raise NotFoundError("User not found", code=ErrorCode.ERR_USER_NOT_FOUND)
    return {"success": True, "user": user.to_response()}
