"""Per-request actor and client metadata carried on the SQLAlchemy session.

``Session.info`` is the hand-off point between the HTTP layer and the change
observer: ``get_db`` stores the client metadata, the request gate stores the
authenticated actor. Plain values are stored rather than ORM instances so they
stay readable after the session commits and expires its objects.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from wateradmin.config import settings
from wateradmin.core.roles import UserRole, parse_role

ACTOR_KEY = "actor"
REQUEST_META_KEY = "request_meta"


@dataclass(frozen=True)
class Actor:
    id: int
    role: Optional[UserRole]

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role=parse_role(user.role))


@dataclass(frozen=True)
class RequestMeta:
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def client_ip(request: Request) -> Optional[str]:
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def request_meta_from(request: Request) -> RequestMeta:
    return RequestMeta(
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def bind_request(db: Session, request: Request) -> None:
    db.info[REQUEST_META_KEY] = request_meta_from(request)


def bind_actor(db: Session, user) -> Actor:
    actor = Actor.from_user(user)
    db.info[ACTOR_KEY] = actor
    return actor


def get_actor(db: Session) -> Optional[Actor]:
    return db.info.get(ACTOR_KEY)


def get_request_meta(db: Session) -> RequestMeta:
    return db.info.get(REQUEST_META_KEY) or RequestMeta()
