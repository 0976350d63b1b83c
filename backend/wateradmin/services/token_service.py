"""Access token lifecycle: issuance, validation, refresh, revocation and sweeps."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Callable, List, Optional, Tuple

from sqlalchemy import or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wateradmin.config import settings
from wateradmin.core.exceptions import (
    SweepOperationError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)
from wateradmin.core.metrics import TOKEN_REJECTIONS, TOKENS_ISSUED, TOKENS_SWEPT
from wateradmin.core.security import (
    MAX_TOKEN_ID,
    format_plaintext_token,
    generate_token_secret,
    hash_token_secret,
    secrets_match,
    split_plaintext_token,
)
from wateradmin.core.timeutils import isoformat_utc, minutes_until, naive_utc, utcnow
from wateradmin.models.token import AccessToken, FULL_SCOPE
from wateradmin.models.user import User
from wateradmin.services.activity_service import (
    ACTION_LOGIN,
    ACTION_LOGOUT,
    ACTION_LOGOUT_ALL,
    activity_service,
)

logger = logging.getLogger(__name__)

LOGIN_TOKEN_NAME = "auth-token"
REFRESHED_TOKEN_NAME = "auth-token-refreshed"

SWEEP_EXPIRED = "expired"
SWEEP_STALE = "stale"


@dataclass
class IssuedToken:
    token: AccessToken
    plaintext: str
    expires_at: Optional[datetime]

    @property
    def expires_in_minutes(self) -> Optional[int]:
        return minutes_until(self.expires_at)


@dataclass
class TokenStatus:
    token_name: str
    created_at: Optional[datetime]
    expires_at: Optional[datetime]
    expires_in_minutes: Optional[int]
    is_expiring_soon: bool
    last_used_at: Optional[datetime]


@dataclass
class RefreshResult:
    refreshed: bool
    expires_at: Optional[datetime]
    expires_in_minutes: Optional[int]
    plaintext: Optional[str] = None


@dataclass
class SweepCandidate:
    id: int
    name: str
    user_id: int
    reason: str
    reference_at: Optional[datetime]


@dataclass
class SweepResult:
    candidates: List[SweepCandidate] = field(default_factory=list)
    deleted: int = 0
    dry_run: bool = False
    cancelled: bool = False
    stale_days: Optional[int] = None


class TokenService:
    """Manage the access-token lifecycle against the persistent store."""

    @staticmethod
    def compute_expiry(remember_me: bool = False, now: Optional[datetime] = None) -> datetime:
        """Remember-me sessions last days, regular sessions hours."""
        now = now or utcnow()
        if remember_me:
            return now + timedelta(days=settings.REMEMBER_ME_EXPIRY_DAYS)
        return now + timedelta(hours=settings.TOKEN_EXPIRY_HOURS)

    @staticmethod
    def _create_token(
        db: Session,
        user: User,
        *,
        name: str,
        expires_at: Optional[datetime],
    ) -> Tuple[AccessToken, str]:
        secret = generate_token_secret()
        token = AccessToken(
            user_id=user.id,
            name=name,
            scope=FULL_SCOPE,
            secret_hash=hash_token_secret(secret),
            expires_at=expires_at,
        )
        db.add(token)
        db.flush()
        return token, format_plaintext_token(token.id, secret)

    @staticmethod
    def issue(db: Session, user: User, remember_me: bool = False) -> IssuedToken:
        """
        Issue a token for ``user`` and record the login.

        The plaintext is only ever available on the returned object.
        """
        expires_at = TokenService.compute_expiry(remember_me)
        token, plaintext = TokenService._create_token(
            db, user, name=LOGIN_TOKEN_NAME, expires_at=expires_at
        )
        db.commit()
        TOKENS_ISSUED.labels("remember_me" if remember_me else "standard").inc()
        logger.info(f"Issued token {token.id} for user {user.id} (remember_me={remember_me})")

        activity_service.log_session_event(
            db,
            user,
            ACTION_LOGIN,
            new_data={
                "token_name": LOGIN_TOKEN_NAME,
                "remember_me": remember_me,
                "expires_at": isoformat_utc(expires_at),
            },
        )
        return IssuedToken(token=token, plaintext=plaintext, expires_at=expires_at)

    @staticmethod
    def find_token(db: Session, plaintext: str) -> Optional[AccessToken]:
        """Resolve a plaintext bearer value to its stored token, if any."""
        if not plaintext:
            return None
        token_id, secret = split_plaintext_token(plaintext)
        if token_id is None:
            return (
                db.query(AccessToken)
                .filter(AccessToken.secret_hash == hash_token_secret(secret))
                .first()
            )
        if token_id > MAX_TOKEN_ID:
            return None
        token = db.query(AccessToken).filter(AccessToken.id == token_id).first()
        if token is None or not secrets_match(secret, token.secret_hash):
            return None
        return token

    @staticmethod
    def authenticate_request(db: Session, plaintext: Optional[str]) -> AccessToken:
        """
        Gate a request: resolve the token, reject or delete it when lapsed,
        otherwise stamp ``last_used_at``.

        Raises:
            UnauthorizedError: no credential, or the token has no owner
            TokenInvalidError: credential does not match a stored token
            TokenExpiredError: token lapsed; it is deleted before raising
        """
        if not plaintext:
            TOKEN_REJECTIONS.labels("unauthorized").inc()
            raise UnauthorizedError()

        token = TokenService.find_token(db, plaintext)
        if token is None:
            TOKEN_REJECTIONS.labels("invalid_token").inc()
            raise TokenInvalidError()

        if token.user is None:
            TOKEN_REJECTIONS.labels("unauthorized").inc()
            raise UnauthorizedError()

        now = utcnow()
        expires_at = naive_utc(token.expires_at)
        if expires_at is not None and expires_at <= now:
            token_id = token.id
            db.delete(token)
            db.commit()
            TOKEN_REJECTIONS.labels("token_expired").inc()
            logger.info(f"Rejected and deleted expired token {token_id}")
            expired_at = isoformat_utc(expires_at)
            raise TokenExpiredError(expired_at)

        token.last_used_at = now
        db.commit()
        return token

    @staticmethod
    def expiry_warning(token: AccessToken, now: Optional[datetime] = None) -> Optional[dict]:
        """Warning fields for tokens inside the warning window, else None."""
        if token.expires_at is None:
            return None
        remaining = minutes_until(token.expires_at, now)
        if remaining > settings.TOKEN_EXPIRY_WARNING_MINUTES:
            return None
        return {
            "expiring_soon": True,
            "expires_in_minutes": remaining,
            "expires_at": isoformat_utc(token.expires_at),
        }

    @staticmethod
    def status(token: AccessToken, now: Optional[datetime] = None) -> TokenStatus:
        remaining = minutes_until(token.expires_at, now)
        return TokenStatus(
            token_name=token.name,
            created_at=naive_utc(token.created_at),
            expires_at=naive_utc(token.expires_at),
            expires_in_minutes=remaining,
            is_expiring_soon=remaining is not None and remaining <= settings.TOKEN_EXPIRY_WARNING_MINUTES,
            last_used_at=naive_utc(token.last_used_at),
        )

    @staticmethod
    def refresh(db: Session, token: AccessToken) -> RefreshResult:
        """
        Replace ``token`` when it is inside the warning window.

        Tokens without expiry or with more time left are returned untouched.
        Replacement deletes the old row and inserts the new one in one
        transaction, always with the regular (non remember-me) expiry.
        """
        remaining = minutes_until(token.expires_at)
        if remaining is None or remaining > settings.TOKEN_EXPIRY_WARNING_MINUTES:
            return RefreshResult(
                refreshed=False,
                expires_at=naive_utc(token.expires_at),
                expires_in_minutes=remaining,
            )

        user = token.user
        old_id = token.id
        try:
            db.delete(token)
            new_token, plaintext = TokenService._create_token(
                db,
                user,
                name=REFRESHED_TOKEN_NAME,
                expires_at=TokenService.compute_expiry(remember_me=False),
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        TOKENS_ISSUED.labels("refresh").inc()
        logger.info(f"Refreshed token {old_id} -> {new_token.id} for user {user.id}")
        expires_at = naive_utc(new_token.expires_at)
        return RefreshResult(
            refreshed=True,
            expires_at=expires_at,
            expires_in_minutes=minutes_until(expires_at),
            plaintext=plaintext,
        )

    @staticmethod
    def revoke(db: Session, token: AccessToken) -> None:
        """Delete a single token (logout) and record the logout."""
        user = token.user
        token_id = token.id
        db.delete(token)
        db.commit()
        logger.info(f"Revoked token {token_id} for user {user.id}")
        activity_service.log_session_event(db, user, ACTION_LOGOUT, new_data={"token_id": token_id})

    @staticmethod
    def revoke_all(db: Session, user: User) -> int:
        """Delete every token of ``user``; returns how many were removed."""
        count = (
            db.query(AccessToken)
            .filter(AccessToken.user_id == user.id)
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info(f"Revoked {count} tokens for user {user.id}")
        activity_service.log_session_event(
            db, user, ACTION_LOGOUT_ALL, new_data={"revoked_tokens": count}
        )
        return count

    @staticmethod
    def find_sweep_candidates(
        db: Session,
        stale_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[SweepCandidate]:
        """
        Tokens a sweep would delete.

        Always includes tokens past ``expires_at``. With ``stale_days`` it also
        includes tokens whose last use (or creation, if never used) is older
        than that many days. A token matching both is listed once, as expired.
        """
        now = now or utcnow()
        expired_clause = and_(AccessToken.expires_at.isnot(None), AccessToken.expires_at < now)
        clauses = [expired_clause]
        if stale_days is not None:
            cutoff = now - timedelta(days=stale_days)
            clauses.append(
                or_(
                    AccessToken.last_used_at < cutoff,
                    and_(AccessToken.last_used_at.is_(None), AccessToken.created_at < cutoff),
                )
            )

        rows = db.query(AccessToken).filter(or_(*clauses)).order_by(AccessToken.id).all()
        candidates = []
        for row in rows:
            expires_at = naive_utc(row.expires_at)
            if expires_at is not None and expires_at < now:
                reason, reference = SWEEP_EXPIRED, expires_at
            else:
                reason, reference = SWEEP_STALE, naive_utc(row.last_used_at or row.created_at)
            candidates.append(
                SweepCandidate(
                    id=row.id,
                    name=row.name,
                    user_id=row.user_id,
                    reason=reason,
                    reference_at=reference,
                )
            )
        return candidates

    @staticmethod
    def _delete_in_batches(db: Session, token_ids: List[int]) -> int:
        """Delete by id, committing each batch so an interrupted sweep stays consistent."""
        batch_size = max(1, settings.TOKEN_SWEEP_BATCH_SIZE)
        deleted = 0
        for start in range(0, len(token_ids), batch_size):
            batch = token_ids[start:start + batch_size]
            try:
                count = (
                    db.query(AccessToken)
                    .filter(AccessToken.id.in_(batch))
                    .delete(synchronize_session=False)
                )
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                TOKENS_SWEPT.inc(deleted)
                logger.error(f"Token sweep aborted after {deleted} deletions: {exc}")
                raise SweepOperationError(deleted, exc) from exc
            deleted += count
        TOKENS_SWEPT.inc(deleted)
        return deleted

    @staticmethod
    def sweep(
        db: Session,
        *,
        stale_days: Optional[int] = None,
        dry_run: bool = False,
        confirm: Optional[Callable[[List[SweepCandidate]], bool]] = None,
    ) -> SweepResult:
        """
        Find and delete sweep candidates.

        ``dry_run`` reports candidates without deleting. ``confirm`` is asked
        before anything is deleted; a falsy answer cancels the sweep.
        """
        candidates = TokenService.find_sweep_candidates(db, stale_days=stale_days)
        result = SweepResult(candidates=candidates, dry_run=dry_run, stale_days=stale_days)
        if dry_run or not candidates:
            return result

        if confirm is not None and not confirm(candidates):
            result.cancelled = True
            logger.info("Token sweep cancelled by operator")
            return result

        result.deleted = TokenService._delete_in_batches(db, [c.id for c in candidates])
        logger.info(f"Token sweep removed {result.deleted} tokens (stale_days={stale_days})")
        return result

    @staticmethod
    def sweep_expired(
        db: Session,
        dry_run: bool = False,
        confirm: Optional[Callable[[List[SweepCandidate]], bool]] = None,
    ) -> SweepResult:
        return TokenService.sweep(db, dry_run=dry_run, confirm=confirm)

    @staticmethod
    def sweep_stale(
        db: Session,
        older_than_days: int,
        dry_run: bool = False,
        confirm: Optional[Callable[[List[SweepCandidate]], bool]] = None,
    ) -> SweepResult:
        return TokenService.sweep(db, stale_days=older_than_days, dry_run=dry_run, confirm=confirm)


token_service = TokenService()
