"""WeChat mini program API client: access token cache, login and reminder push."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any

import httpx
from pydantic import BaseModel, Field

from hydration.core import clock
from hydration.core.config import constants, settings
from hydration.core.errors import UpstreamServiceError


logger = logging.getLogger(__name__)

# errcodes meaning the cached access token is no longer accepted
INVALID_TOKEN_ERRCODES = {40001, 40014, 42001}


class SendMessageResult(BaseModel):
    """Result of pushing a subscribe message."""

    success: bool = Field(..., description="Whether the message was accepted by WeChat")
    error: str | None = Field(None, description="Error message if failed")


class LoginSession(BaseModel):
    """Result of exchanging a wx.login code."""

    openid: str
    session_key: str | None = None


async def _get_json(url: str, params: dict[str, Any]) -> dict[str, Any]:
    async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
        response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()


async def _post_json(url: str, params: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
        response = await client.post(url, params=params, json=payload)
        response.raise_for_status()
        return response.json()


class AccessTokenCache:
    """Process-wide cache for the single WeChat access token.

    The token is re-acquired when absent or past its expiry instant. Concurrent
    callers that find it stale share one refresh: the first one fetches while
    the others wait on the lock and then read the fresh value.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._token: str | None = None
        self._expires_at: datetime | None = None
        self._lock = asyncio.Lock()

    def _cached(self) -> str | None:
        if self._token and self._expires_at and self._expires_at > clock.now():
            return self._token
        return None

    @property
    def expires_at(self) -> datetime | None:
        return self._expires_at

    def invalidate(self) -> None:
        """Drop the cached token so the next caller refreshes it."""
        self._token = None
        self._expires_at = None

    async def get_token(self) -> str:
        """Return a valid access token, fetching a new one if needed.

        Raises:
            ValueError: If WeChat credentials are not configured
            UpstreamServiceError: If WeChat rejects the request
        """
        token = self._cached()
        if token:
            return token

        async with self._lock:
            token = self._cached()
            if token:
                return token

            token, expires_in = await self._fetch_token()
            lifetime = max(expires_in - constants.ACCESS_TOKEN_REFRESH_MARGIN_SECONDS, 0)
            self._token = token
            self._expires_at = clock.now() + timedelta(seconds=lifetime)
            logger.info("Refreshed WeChat access token", extra={"expires_at": clock.format_timestamp(self._expires_at)})
            return token

    async def _fetch_token(self) -> tuple[str, int]:
        app_id = settings.require_credential("wechat_app_id", "WeChat AppID")
        app_secret = settings.require_credential("wechat_app_secret", "WeChat AppSecret")

        data = await _get_json(
            f"{settings.wechat_api_base_url}/cgi-bin/token",
            params={"grant_type": "client_credential", "appid": app_id, "secret": app_secret},
        )
        if data.get("errcode"):
            raise UpstreamServiceError(f"WeChat API error: {data.get('errmsg')}")

        return data["access_token"], int(data.get("expires_in") or constants.ACCESS_TOKEN_DEFAULT_TTL_SECONDS)


# Global token cache instance
token_cache = AccessTokenCache()


async def exchange_login_code(code: str) -> LoginSession:
    """Exchange a wx.login code for the user's openid.

    Raises:
        UpstreamServiceError: If WeChat rejects the code
    """
    app_id = settings.require_credential("wechat_app_id", "WeChat AppID")
    app_secret = settings.require_credential("wechat_app_secret", "WeChat AppSecret")

    try:
        data = await _get_json(
            f"{settings.wechat_api_base_url}/sns/jscode2session",
            params={
                "appid": app_id,
                "secret": app_secret,
                "js_code": code,
                "grant_type": "authorization_code",
            },
        )
    except httpx.HTTPError as e:
        raise UpstreamServiceError(f"Failed to reach WeChat: {e}") from e

    if data.get("errcode"):
        logger.warning("jscode2session failed", extra={"errcode": data.get("errcode"), "errmsg": data.get("errmsg")})
        raise UpstreamServiceError(f"Failed to get openid: {data.get('errmsg')}")

    return LoginSession(openid=data["openid"], session_key=data.get("session_key"))


def build_reminder_payload(*, openid: str, nickname: str, sent_at: datetime) -> dict[str, Any]:
    """Build the subscribe-message body for a water reminder."""
    return {
        "touser": openid,
        "template_id": settings.wechat_template_id,
        "page": settings.wechat_reminder_page,
        "data": {
            "time2": {"value": f"{sent_at.hour}:{sent_at.minute:02d}"},
            "thing3": {"value": f"{nickname}，该喝水啦！"},
        },
    }


async def send_water_reminder(*, openid: str, nickname: str) -> SendMessageResult:
    """Push one water reminder. Never retries; failures are returned, not raised."""
    payload = build_reminder_payload(openid=openid, nickname=nickname, sent_at=clock.now())

    try:
        token = await token_cache.get_token()
        data = await _post_json(
            f"{settings.wechat_api_base_url}/cgi-bin/message/subscribe/send",
            params={"access_token": token},
            payload=payload,
        )
    except (httpx.HTTPError, UpstreamServiceError, ValueError) as e:
        return SendMessageResult(success=False, error=f"Send reminder failed: {e!s}")

    errcode = data.get("errcode", 0)
    if errcode != 0:
        if errcode in INVALID_TOKEN_ERRCODES:
            token_cache.invalidate()
        return SendMessageResult(success=False, error=f"Send reminder failed: {data.get('errmsg')}")

    return SendMessageResult(success=True)
