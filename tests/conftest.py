from __future__ import annotations

from typing import Optional

import pytest

from utils.mail import EmailDeliveryError
from utils.otp_service import OtpService
from utils.otp_store import InMemoryOtpStore


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send(self, *, to_email: str, subject: str, html: str, text: Optional[str] = None) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.sent.append({"to_email": to_email, "subject": subject, "html": html, "text": text})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def store() -> InMemoryOtpStore:
    return InMemoryOtpStore()


@pytest.fixture
def service(store, mailer, clock) -> OtpService:
    return OtpService(store=store, mailer=mailer, ttl_seconds=300, clock=clock)
