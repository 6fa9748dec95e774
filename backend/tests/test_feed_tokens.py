from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from calendar_feeds.core.exceptions import TokenGenerationExhausted
from calendar_feeds.models.feed_token import FeedToken
from calendar_feeds.services import feed_tokens
from calendar_feeds.services.feed_tokens import (
    FeedTokenService,
    build_feed_urls,
    generate_secure_token,
    required_kinds,
)

BASE_URL = "https://calendar.example.com"


@pytest.fixture
def service(db_session):
    return FeedTokenService(db_session)


def _tokens(result):
    return {kind: row.token for kind, row in result.items()}


def _active(db_session, user_id="user-1"):
    rows = (
        db_session.query(FeedToken)
        .filter(FeedToken.user_id == user_id, FeedToken.is_active.is_(True))
        .all()
    )
    return sorted((row.feed_kind, row.token) for row in rows)


def test_generate_secure_token():
    token = generate_secure_token(32)
    assert len(token) == 43
    assert "=" not in token
    assert set(token) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")
    assert generate_secure_token(32) != token


def test_required_kinds():
    assert required_kinds("separate") == ["courses", "assignments"]
    assert required_kinds("combined") == ["combined"]
    assert required_kinds("anything") == ["courses", "assignments"]


def test_ensure_feeds_creates_required_kinds(service, db_session):
    result = service.ensure_feeds("user-1", "separate")

    assert set(result) == {"courses", "assignments"}
    assert [kind for kind, _ in _active(db_session)] == ["assignments", "courses"]
    assert service.get_settings("user-1").feed_mode == "separate"


def test_ensure_feeds_is_idempotent(service):
    first = _tokens(service.ensure_feeds("user-1", "separate"))
    second = _tokens(service.ensure_feeds("user-1", "separate"))

    assert first == second


def test_mode_switch_revokes_previous_kinds(service, db_session):
    separate = _tokens(service.ensure_feeds("user-1", "separate"))
    combined = _tokens(service.ensure_feeds("user-1", "combined"))

    assert list(combined) == ["combined"]
    assert _active(db_session) == [("combined", combined["combined"])]

    for token in separate.values():
        row = db_session.query(FeedToken).filter(FeedToken.token == token).one()
        assert row.is_active is False
        assert row.revoked_at is not None

    assert service.get_settings("user-1").feed_mode == "combined"


def test_switching_back_issues_new_tokens(service):
    separate = _tokens(service.ensure_feeds("user-1", "separate"))
    service.ensure_feeds("user-1", "combined")
    again = _tokens(service.ensure_feeds("user-1", "separate"))

    assert set(again) == set(separate)
    assert not set(again.values()) & set(separate.values())


def test_ensure_feeds_repairs_partial_state(service, db_session):
    service.ensure_feeds("user-1", "separate")
    # simulate a crash that left an extra kind active and one missing
    db_session.query(FeedToken).filter(FeedToken.feed_kind == "assignments").update({"is_active": False})
    db_session.add(FeedToken(user_id="user-1", feed_kind="combined", token="stray", is_active=True))
    db_session.commit()
    courses_before = service.active_tokens("user-1")["courses"].token

    result = _tokens(service.ensure_feeds("user-1", "separate"))

    assert result["courses"] == courses_before
    assert [kind for kind, _ in _active(db_session)] == ["assignments", "courses"]


def test_rotate_feeds_defaults_to_mode_kinds(service, db_session):
    before = _tokens(service.ensure_feeds("user-1", "separate"))
    rotated = _tokens(service.rotate_feeds("user-1"))

    assert set(rotated) == {"courses", "assignments"}
    for kind in rotated:
        assert rotated[kind] != before[kind]
    assert _active(db_session) == sorted(rotated.items())


def test_rotate_selected_kind_only(service):
    before = _tokens(service.ensure_feeds("user-1", "separate"))
    rotated = _tokens(service.rotate_feeds("user-1", ["courses", "courses", "bogus"]))

    assert list(rotated) == ["courses"]
    after = {kind: row.token for kind, row in service.active_tokens("user-1").items()}
    assert after["assignments"] == before["assignments"]
    assert after["courses"] == rotated["courses"] != before["courses"]


def test_rotate_with_only_unknown_kinds_falls_back(service):
    service.ensure_feeds("user-1", "combined")
    rotated = service.rotate_feeds("user-1", ["bogus"])
    assert list(rotated) == ["combined"]


def test_disconnect_all(service, db_session):
    service.ensure_feeds("user-1", "separate")
    service.ensure_feeds("user-2", "combined")

    assert service.disconnect_all("user-1") == 2
    assert _active(db_session) == []
    assert len(_active(db_session, "user-2")) == 1
    assert db_session.query(FeedToken).filter(FeedToken.user_id == "user-1").count() == 2


def test_lookup_active(service):
    token = service.ensure_feeds("user-1", "combined")["combined"].token

    assert service.lookup_active(token).feed_kind == "combined"
    assert service.lookup_active("never-issued") is None
    assert service.lookup_active("") is None

    service.disconnect_all("user-1")
    assert service.lookup_active(token) is None


def test_token_generation_gives_up_after_bound(db_session, monkeypatch):
    taken = FeedTokenService(db_session).ensure_feeds("user-1", "combined")["combined"].token
    calls = []

    def colliding(nbytes):
        calls.append(nbytes)
        return taken

    monkeypatch.setattr(feed_tokens, "generate_secure_token", colliding)
    service = FeedTokenService(db_session, max_attempts=3)

    with pytest.raises(TokenGenerationExhausted):
        service.ensure_feeds("user-2", "combined")
    assert len(calls) == 3
    assert service.active_tokens("user-2") == {}


def test_token_generation_retries_with_fresh_token(db_session, monkeypatch):
    taken = FeedTokenService(db_session).ensure_feeds("user-1", "combined")["combined"].token
    values = iter([taken, "fresh-token"])
    monkeypatch.setattr(feed_tokens, "generate_secure_token", lambda nbytes: next(values))

    result = FeedTokenService(db_session).ensure_feeds("user-2", "combined")
    assert result["combined"].token == "fresh-token"


def test_non_unique_integrity_errors_are_not_retried(db_session, monkeypatch):
    calls = []

    def fresh(nbytes):
        calls.append(nbytes)
        return f"token-{len(calls)}"

    monkeypatch.setattr(feed_tokens, "generate_secure_token", fresh)
    service = FeedTokenService(db_session, max_attempts=3)

    # user_id is NOT NULL; a retry cannot fix that
    with pytest.raises(IntegrityError):
        service._create_token(None, "combined")
    assert len(calls) == 1
    assert db_session.query(FeedToken).count() == 0


@pytest.mark.parametrize(
    "orig, expected",
    [
        (Exception("UNIQUE constraint failed: calendar_feed_tokens.token"), True),
        (Exception("NOT NULL constraint failed: calendar_feed_tokens.user_id"), False),
        (SimpleNamespace(pgcode="23505"), True),
        (SimpleNamespace(pgcode="23503"), False),
        (SimpleNamespace(pgcode=None, sqlstate="23505"), True),
    ],
)
def test_is_unique_violation(orig, expected):
    exc = IntegrityError("INSERT INTO calendar_feed_tokens", {}, orig)
    assert feed_tokens._is_unique_violation(exc) is expected


def test_build_state(service):
    assert service.build_state("user-1", BASE_URL).status == "not_connected"

    service.ensure_feeds("user-1", "separate")
    state = service.build_state("user-1", BASE_URL)

    assert state.status == "connected"
    assert state.settings.feed_mode == "separate"
    assert [feed.kind for feed in state.feeds] == ["courses", "assignments"]


def test_build_feed_urls():
    links = build_feed_urls("abc-_123", BASE_URL + "/")

    assert links.https_url == "https://calendar.example.com/calendar-feed?token=abc-_123"
    assert links.webcal_url == "webcal://calendar.example.com/calendar-feed?token=abc-_123"
    assert links.google_subscribe_url == (
        "https://calendar.google.com/calendar/u/0/r?cid="
        "https%3A%2F%2Fcalendar.example.com%2Fcalendar-feed%3Ftoken%3Dabc-_123"
    )


def test_build_feed_urls_plain_http_keeps_scheme():
    links = build_feed_urls("t", "http://localhost:8000")
    assert links.webcal_url == links.https_url == "http://localhost:8000/calendar-feed?token=t"
