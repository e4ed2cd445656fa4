# fitcoach/core/deps.py
# shared dependencies: AppContext lookup, user identity (anon cookie / trusted header), plan store

from __future__ import annotations
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response
from starlette.requests import HTTPConnection

from fitcoach.core.context import AppContext
from fitcoach.services.errors import StoreUnavailable
from fitcoach.services.plan_store import PlanStore

COOKIE = "anon_id"
MAX_AGE = 60 * 60 * 24 * 365 * 2  # 2 years
USER_HEADER = "X-User-Id"


class IdentityProvider(ABC):
    """Resolves the opaque user id that saved plans are scoped by."""

    @abstractmethod
    def user_id(self, conn: HTTPConnection, response: Optional[Response] = None) -> str:
        ...


class AnonCookieIdentity(IdentityProvider):
    # issue a cookie if there is none, reuse it otherwise
    def user_id(self, conn: HTTPConnection, response: Optional[Response] = None) -> str:
        v = conn.cookies.get(COOKIE)
        if not v:
            v = uuid.uuid4().hex
            if response is not None:
                response.set_cookie(COOKIE, v, max_age=MAX_AGE, httponly=True, samesite="lax")
        return v


class TrustedHeaderIdentity(IdentityProvider):
    # only behind an auth proxy that sets/strips X-User-Id itself
    def __init__(self, fallback: IdentityProvider):
        self.fallback = fallback

    def user_id(self, conn: HTTPConnection, response: Optional[Response] = None) -> str:
        v = (conn.headers.get(USER_HEADER) or "").strip()
        if v:
            return v
        return self.fallback.user_id(conn, response)


def build_identity(trust_header: bool) -> IdentityProvider:
    anon = AnonCookieIdentity()
    return TrustedHeaderIdentity(anon) if trust_header else anon


def get_context(conn: HTTPConnection) -> AppContext:
    ctx = getattr(conn.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="service is starting up")
    return ctx


def get_user_id(request: Request, response: Response, ctx: AppContext = Depends(get_context)) -> str:
    return ctx.identity.user_id(request, response)


def get_plan_store(user_id: str = Depends(get_user_id), ctx: AppContext = Depends(get_context)) -> PlanStore:
    try:
        return ctx.plan_store(user_id)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
