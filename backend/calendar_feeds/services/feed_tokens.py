"""
Subscription token lifecycle for calendar feeds.

A feed URL is a capability: whoever holds the token can read the feed. The
service keeps the set of active kinds equal to what the user's feed mode
requires, and only rotates a token when asked to.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from calendar_feeds.core.constants import (
    DEFAULT_ASSIGNMENTS_RULE,
    DEFAULT_SCOPE,
    DEFAULT_TIMEZONE,
    FEED_KINDS,
    GOOGLE_SUBSCRIBE_URL,
    REQUIRED_KINDS_BY_MODE,
)
from calendar_feeds.core.exceptions import TokenGenerationExhausted
from calendar_feeds.models.feed_token import FeedToken
from calendar_feeds.models.integration_settings import IntegrationSettings
from calendar_feeds.schemas.integration import (
    FeedLinkRead,
    FeedLinks,
    IntegrationSettingsRead,
    IntegrationState,
    normalize_feed_kinds,
    normalize_feed_mode,
)

logger = logging.getLogger("ila.feed_tokens")

# SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def generate_secure_token(nbytes: int = 32) -> str:
    """URL-safe base64 of ``nbytes`` random bytes, without padding."""
    return secrets.token_urlsafe(nbytes)


def required_kinds(feed_mode: str) -> List[str]:
    return list(REQUIRED_KINDS_BY_MODE[normalize_feed_mode(feed_mode)])


def build_feed_urls(token: str, base_url: str) -> FeedLinks:
    base = base_url.rstrip("/")
    https_url = f"{base}/calendar-feed?token={quote(token, safe='')}"
    if https_url.startswith("https://"):
        webcal_url = "webcal://" + https_url[len("https://"):]
    else:
        webcal_url = https_url
    google_url = f"{GOOGLE_SUBSCRIBE_URL}?cid={quote(https_url, safe='')}"
    return FeedLinks(https_url=https_url, webcal_url=webcal_url, google_subscribe_url=google_url)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_unique_violation(exc: IntegrityError) -> bool:
    """True for duplicate-key errors; NOT NULL and foreign key failures are not retried."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "unique" in str(orig).lower()


class FeedTokenService:
    """
    Token and settings operations for one request.

    Each mutation commits as it goes; there is no cross-row transaction.
    A crash part-way leaves a state that the next ``ensure_feeds`` repairs.
    """

    def __init__(self, db: Session, token_bytes: int = 32, max_attempts: int = 6):
        self.db = db
        self.token_bytes = token_bytes
        self.max_attempts = max_attempts

    # --- settings ---

    def _settings_row(self, user_id: str) -> Optional[IntegrationSettings]:
        return (
            self.db.query(IntegrationSettings)
            .filter(IntegrationSettings.user_id == user_id)
            .first()
        )

    def get_settings(self, user_id: str) -> IntegrationSettingsRead:
        row = self._settings_row(user_id)
        if not row:
            return IntegrationSettingsRead()
        return IntegrationSettingsRead(
            feed_mode=normalize_feed_mode(row.feed_mode),
            timezone=row.timezone or DEFAULT_TIMEZONE,
        )

    def _upsert_settings(self, user_id: str, feed_mode: str) -> None:
        row = self._settings_row(user_id)
        if row:
            row.feed_mode = feed_mode
            row.timezone = row.timezone or DEFAULT_TIMEZONE
        else:
            row = IntegrationSettings(
                user_id=user_id,
                feed_mode=feed_mode,
                timezone=DEFAULT_TIMEZONE,
                scope=DEFAULT_SCOPE,
                assignments_rule=DEFAULT_ASSIGNMENTS_RULE,
            )
            self.db.add(row)
        self.db.commit()

    # --- tokens ---

    def active_tokens(self, user_id: str) -> Dict[str, FeedToken]:
        """Active token per kind, newest first if duplicates ever exist."""
        rows = (
            self.db.query(FeedToken)
            .filter(FeedToken.user_id == user_id, FeedToken.is_active.is_(True))
            .order_by(FeedToken.created_at.desc(), FeedToken.id.desc())
            .all()
        )
        by_kind: Dict[str, FeedToken] = {}
        for row in rows:
            if row.feed_kind in FEED_KINDS and row.feed_kind not in by_kind:
                by_kind[row.feed_kind] = row
        return by_kind

    def lookup_active(self, token: str) -> Optional[FeedToken]:
        """The active token row, or None for unknown and revoked tokens alike."""
        if not token:
            return None
        row = self.db.query(FeedToken).filter(FeedToken.token == token).first()
        if not row or row.is_active is not True or row.feed_kind not in FEED_KINDS:
            return None
        return row

    def _create_token(self, user_id: str, kind: str) -> FeedToken:
        for attempt in range(1, self.max_attempts + 1):
            record = FeedToken(
                user_id=user_id,
                feed_kind=kind,
                token=generate_secure_token(self.token_bytes),
                is_active=True,
            )
            self.db.add(record)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if not _is_unique_violation(exc):
                    raise
                # A concurrent request may have activated this kind already
                winner = self.active_tokens(user_id).get(kind)
                if winner is not None:
                    logger.info("using concurrently created %s feed token for user %s", kind, user_id)
                    return winner
                logger.warning(
                    "feed token insert collided for user %s kind %s (attempt %d/%d)",
                    user_id, kind, attempt, self.max_attempts,
                )
                continue
            self.db.refresh(record)
            logger.info("created %s feed token for user %s", kind, user_id)
            return record

        logger.error("giving up on %s feed token for user %s", kind, user_id)
        raise TokenGenerationExhausted(self.max_attempts)

    def _deactivate_kinds(self, user_id: str, kinds: Iterable[str]) -> int:
        kinds = list(kinds)
        if not kinds:
            return 0
        count = (
            self.db.query(FeedToken)
            .filter(
                FeedToken.user_id == user_id,
                FeedToken.is_active.is_(True),
                FeedToken.feed_kind.in_(kinds),
            )
            .update(
                {FeedToken.is_active: False, FeedToken.revoked_at: _utcnow()},
                synchronize_session=False,
            )
        )
        self.db.commit()
        if count:
            logger.info("revoked %d feed token(s) %s for user %s", count, kinds, user_id)
        return count

    # --- operations ---

    def ensure_feeds(self, user_id: str, feed_mode: str) -> Dict[str, FeedToken]:
        """
        Make the active kinds match ``feed_mode``. Kinds that already have an
        active token keep it, so calling this twice never changes a URL.
        """
        feed_mode = normalize_feed_mode(feed_mode)
        self._upsert_settings(user_id, feed_mode)

        required = required_kinds(feed_mode)
        self._deactivate_kinds(user_id, [k for k in FEED_KINDS if k not in required])

        by_kind = self.active_tokens(user_id)
        for kind in required:
            if kind not in by_kind:
                by_kind[kind] = self._create_token(user_id, kind)

        return {kind: by_kind[kind] for kind in required}

    def rotate_feeds(self, user_id: str, kinds: Optional[Iterable[str]] = None) -> Dict[str, FeedToken]:
        kinds = normalize_feed_kinds(list(kinds) if kinds is not None else [])
        if not kinds:
            kinds = required_kinds(self.get_settings(user_id).feed_mode)

        self._deactivate_kinds(user_id, kinds)
        return {kind: self._create_token(user_id, kind) for kind in kinds}

    def disconnect_all(self, user_id: str) -> int:
        return self._deactivate_kinds(user_id, FEED_KINDS)

    def build_state(self, user_id: str, base_url: str) -> IntegrationState:
        settings = self.get_settings(user_id)
        active = self.active_tokens(user_id)
        feeds = [
            FeedLinkRead(kind=kind, **build_feed_urls(active[kind].token, base_url).model_dump())
            for kind in FEED_KINDS
            if kind in active
        ]
        return IntegrationState(
            status="connected" if feeds else "not_connected",
            settings=settings,
            feeds=feeds,
        )
