import logging
from unittest.mock import MagicMock

import pytest

from app.core.config import get_settings
from app.models import User
from app.services import (
    AuthService,
    InMemoryCounterBackend,
    InMemoryOTPStore,
    LoggingDeliveryChannel,
    RateLimiter,
    UserDirectory,
)
from app.services import exceptions


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingDelivery(LoggingDeliveryChannel):
    def __init__(self):
        super().__init__()
        self.sent: list[tuple[str, str]] = []

    def deliver(self, *, phone: str, code: str) -> None:
        self.sent.append((phone, code))


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def delivery():
    return RecordingDelivery()


@pytest.fixture()
def service(db_session, token_issuer, clock, delivery):
    settings = get_settings()
    return AuthService(
        otp_store=InMemoryOTPStore(clock=clock),
        rate_limiter=RateLimiter(
            InMemoryCounterBackend(clock=clock),
            max_attempts=settings.OTP_RATE_LIMIT_MAX,
            window_seconds=settings.OTP_RATE_LIMIT_WINDOW_SECONDS,
        ),
        directory=UserDirectory(db_session),
        token_issuer=token_issuer,
        delivery=delivery,
        settings=settings,
    )


def _last_code(delivery: RecordingDelivery) -> str:
    return delivery.sent[-1][1]


def test_request_otp_stores_live_code_and_delivers_it(service, delivery):
    issued = service.request_otp(phone="+14165551234")

    code = _last_code(delivery)
    assert len(code) == 6 and code.isdigit()
    assert service.otp_store.get("+14165551234") == code
    assert issued.expires_in == 120
    assert issued.remaining == 2
    assert not hasattr(issued, "code")


def test_verify_succeeds_exactly_once(service, delivery, token_issuer):
    phone = "+14165551201"
    service.request_otp(phone=phone)
    code = _last_code(delivery)

    session = service.verify_otp(phone=phone, code=code)
    claims = token_issuer.decode_token(session.token)
    assert claims["sub"] == str(session.user.id)
    assert claims["phone"] == phone
    assert session.expires_in == 30 * 60

    with pytest.raises(exceptions.NotFoundOrExpired):
        service.verify_otp(phone=phone, code=code)


def test_verify_without_issued_code_fails(service):
    with pytest.raises(exceptions.NotFoundOrExpired):
        service.verify_otp(phone="+14165551202", code="123456")


def test_verify_after_ttl_fails(service, delivery, clock):
    phone = "+14165551203"
    service.request_otp(phone=phone)
    clock.now += 120

    with pytest.raises(exceptions.NotFoundOrExpired):
        service.verify_otp(phone=phone, code=_last_code(delivery))


def test_wrong_codes_do_not_consume_the_stored_code(service, delivery):
    phone = "+14165551204"
    service.request_otp(phone=phone)
    code = _last_code(delivery)
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(3):
        with pytest.raises(exceptions.NotFoundOrExpired):
            service.verify_otp(phone=phone, code=wrong)

    assert service.verify_otp(phone=phone, code=code).token


def test_verify_matches_and_removes_code_in_one_store_call(service, delivery):
    phone = "+14165551214"
    service.request_otp(phone=phone)
    code = _last_code(delivery)
    service.otp_store = MagicMock(wraps=service.otp_store)

    service.verify_otp(phone=phone, code=code)

    service.otp_store.consume.assert_called_once_with(phone, code)
    service.otp_store.get.assert_not_called()
    service.otp_store.delete.assert_not_called()


def test_verify_loses_to_a_concurrent_verifier_that_consumed_first(service, delivery):
    phone = "+14165551215"
    service.request_otp(phone=phone)
    code = _last_code(delivery)
    assert service.otp_store.consume(phone, code)

    with pytest.raises(exceptions.NotFoundOrExpired):
        service.verify_otp(phone=phone, code=code)


def test_second_request_overwrites_first_code(service, delivery):
    phone = "+14165551205"
    service.request_otp(phone=phone)
    first = _last_code(delivery)
    service.request_otp(phone=phone)
    second = _last_code(delivery)

    if first != second:
        with pytest.raises(exceptions.NotFoundOrExpired):
            service.verify_otp(phone=phone, code=first)
    assert service.verify_otp(phone=phone, code=second).token


def test_request_is_rate_limited_after_max_attempts(service, delivery):
    phone = "+14165551206"
    for _ in range(3):
        service.request_otp(phone=phone)

    with pytest.raises(exceptions.RateLimited) as excinfo:
        service.request_otp(phone=phone)

    assert excinfo.value.remaining == -1
    assert len(delivery.sent) == 3


def test_rate_limit_reset_allows_new_request(service):
    phone = "+14165551207"
    for _ in range(3):
        service.request_otp(phone=phone)
    service.rate_limiter.reset(phone)

    assert service.request_otp(phone=phone).remaining == 2


def test_verify_reuses_existing_user(service, delivery, db_session):
    phone = "+14165551208"
    service.request_otp(phone=phone)
    first = service.verify_otp(phone=phone, code=_last_code(delivery))
    service.request_otp(phone=phone)
    second = service.verify_otp(phone=phone, code=_last_code(delivery))

    assert first.user.id == second.user.id
    assert db_session.query(User).filter(User.phone == phone).count() == 1


@pytest.mark.parametrize("phone", ["", "14165551234", "+0123", "not-a-phone"])
def test_malformed_phone_is_rejected_before_touching_stores(service, phone):
    service.otp_store = MagicMock()
    service.rate_limiter = MagicMock()

    with pytest.raises(exceptions.ValidationError):
        service.request_otp(phone=phone)

    service.rate_limiter.allow.assert_not_called()
    service.otp_store.set.assert_not_called()


@pytest.mark.parametrize("code", ["", "12345", "1234567", "12a456"])
def test_malformed_code_is_rejected_before_touching_store(service, code):
    service.otp_store = MagicMock()
    with pytest.raises(exceptions.ValidationError):
        service.verify_otp(phone="+14165551209", code=code)
    service.otp_store.consume.assert_not_called()


def test_backend_failure_in_limiter_propagates(service):
    service.rate_limiter = MagicMock()
    service.rate_limiter.allow.side_effect = exceptions.BackendUnavailable("rate limiter unavailable")
    service.otp_store = MagicMock()

    with pytest.raises(exceptions.BackendUnavailable):
        service.request_otp(phone="+14165551210")
    service.otp_store.set.assert_not_called()


def test_signing_failure_after_match_leaves_code_consumed(service, delivery):
    phone = "+14165551211"
    service.request_otp(phone=phone)
    code = _last_code(delivery)
    service.token_issuer = MagicMock()
    service.token_issuer.issue_token.side_effect = exceptions.SigningError("unable to sign token")

    with pytest.raises(exceptions.SigningError):
        service.verify_otp(phone=phone, code=code)
    with pytest.raises(exceptions.NotFoundOrExpired):
        service.otp_store.get(phone)


def test_code_is_never_logged_outside_delivery(service, caplog):
    caplog.set_level(logging.INFO)
    phone = "+14165551212"
    service.request_otp(phone=phone)
    code = service.otp_store.get(phone)

    for record in caplog.records:
        if record.name != "app.sms":
            assert code not in record.getMessage()
            assert phone not in record.getMessage()


def test_logging_delivery_masks_phone(caplog):
    caplog.set_level(logging.INFO, logger="app.sms")
    LoggingDeliveryChannel().deliver(phone="+14165551213", code="123456")

    messages = [record.getMessage() for record in caplog.records if record.name == "app.sms"]
    assert messages == ["DRY-RUN OTP SMS | phone=+1****13 | code=123456"]
