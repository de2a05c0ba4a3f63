"""Tests for one-time verification code lifecycle."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from src.trustgate.services.auth.codes import CodeLifecycle
from src.trustgate.services.auth.exceptions import (
    InvalidOrExpiredCodeError,
    StoreUnavailableError,
    TooManyAttemptsError,
)
from src.trustgate.services.database.models import (
    VERIFICATION_ATTEMPTS_TABLE,
    VERIFICATION_CODES_TABLE,
    CodePurpose,
)


class FrozenClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def codes(db, clock) -> CodeLifecycle:
    return CodeLifecycle(db, length=6, ttl_minutes=10, max_attempts=5, clock=clock)


class TestGenerate:
    """Tests for code generation."""

    def test_digits_of_requested_length(self):
        for length in (4, 6, 8):
            code = CodeLifecycle.generate(length)
            assert len(code) == length
            assert code.isdigit()

    def test_codes_vary(self):
        assert len({CodeLifecycle.generate(6) for _ in range(50)}) > 1

    def test_non_positive_length_rejected(self):
        with pytest.raises(ValueError):
            CodeLifecycle.generate(0)


class TestIssue:
    """Tests for storing new codes."""

    def test_stores_unused_code_with_expiry(self, codes, fake_supabase, clock):
        issued = codes.issue("a@b.com")

        assert issued.used is False
        assert issued.purpose == CodePurpose.LOGIN
        assert issued.expires_at - issued.created_at == timedelta(minutes=10)
        [row] = fake_supabase.rows(VERIFICATION_CODES_TABLE)
        assert row["code"] == issued.code
        assert row["email"] == "a@b.com"

    def test_store_failure_surfaces(self, codes, fake_supabase):
        import httpx

        fake_supabase.failure = httpx.ConnectError("connection refused")

        with pytest.raises(StoreUnavailableError):
            codes.issue("a@b.com")


class TestConsume:
    """Tests for consuming codes."""

    def test_consumes_once(self, codes):
        issued = codes.issue("a@b.com")

        consumed = codes.consume("a@b.com", issued.code)

        assert consumed.id == issued.id
        assert consumed.used is True
        with pytest.raises(InvalidOrExpiredCodeError):
            codes.consume("a@b.com", issued.code)

    def test_wrong_code(self, codes):
        issued = codes.issue("a@b.com")
        wrong = "000000" if issued.code != "000000" else "111111"

        with pytest.raises(InvalidOrExpiredCodeError):
            codes.consume("a@b.com", wrong)

    def test_wrong_email(self, codes):
        issued = codes.issue("a@b.com")

        with pytest.raises(InvalidOrExpiredCodeError):
            codes.consume("other@b.com", issued.code)

    def test_wrong_purpose(self, codes):
        issued = codes.issue("a@b.com", CodePurpose.RESET)

        with pytest.raises(InvalidOrExpiredCodeError):
            codes.consume("a@b.com", issued.code, CodePurpose.LOGIN)

    def test_expired_code(self, codes, clock):
        issued = codes.issue("a@b.com")
        clock.advance(minutes=10)

        with pytest.raises(InvalidOrExpiredCodeError):
            codes.consume("a@b.com", issued.code)

    def test_just_before_expiry(self, codes, clock):
        issued = codes.issue("a@b.com")
        clock.advance(minutes=9, seconds=59)

        assert codes.consume("a@b.com", issued.code).used is True

    def test_earlier_codes_stay_valid(self, codes):
        first = codes.issue("a@b.com")
        codes.issue("a@b.com")

        assert codes.consume("a@b.com", first.code).id == first.id

    def test_failed_consume_is_recorded(self, codes, fake_supabase):
        codes.issue("a@b.com")

        with pytest.raises(InvalidOrExpiredCodeError):
            codes.consume("a@b.com", "not-it")

        [attempt] = fake_supabase.rows(VERIFICATION_ATTEMPTS_TABLE)
        assert attempt["email"] == "a@b.com"
        assert attempt["purpose"] == "login"

    def test_concurrent_consume_has_one_winner(self, db, clock):
        """Two racing requests for the same code: exactly one succeeds."""
        codes = CodeLifecycle(db, max_attempts=0, clock=clock)

        def attempt(code):
            try:
                return codes.consume("a@b.com", code)
            except InvalidOrExpiredCodeError as e:
                return e

        for _ in range(10):
            issued = codes.issue("a@b.com")
            with ThreadPoolExecutor(max_workers=2) as pool:
                results = list(pool.map(attempt, [issued.code, issued.code]))

            winners = [r for r in results if not isinstance(r, Exception)]
            losers = [r for r in results if isinstance(r, InvalidOrExpiredCodeError)]
            assert len(winners) == 1
            assert len(losers) == 1
            assert winners[0].id == issued.id


class TestThrottle:
    """Tests for the failed-attempt limit."""

    def test_locks_after_max_failures(self, codes):
        issued = codes.issue("a@b.com")
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                codes.consume("a@b.com", "999999" if issued.code != "999999" else "888888")

        with pytest.raises(TooManyAttemptsError):
            codes.consume("a@b.com", issued.code)

    def test_failures_age_out(self, codes, clock):
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                codes.consume("a@b.com", "123456")

        clock.advance(minutes=11)
        issued = codes.issue("a@b.com")

        assert codes.consume("a@b.com", issued.code).used is True

    def test_limit_is_per_email(self, codes):
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                codes.consume("a@b.com", "123456")

        issued = codes.issue("other@b.com")
        assert codes.consume("other@b.com", issued.code).used is True

    def test_zero_disables_throttle(self, db, clock):
        unlimited = CodeLifecycle(db, max_attempts=0, clock=clock)
        for _ in range(10):
            with pytest.raises(InvalidOrExpiredCodeError):
                unlimited.consume("a@b.com", "123456")
