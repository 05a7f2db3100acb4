"""Tests for email rendering and delivery."""

import smtplib

import pytest

from core.exceptions import EmailDeliveryError
from utils.email_sender import NullEmailSender, SMTPEmailSender, Notifier
from utils.email_templates import (
    PasswordResetEmailAssembler,
    PurchaseApprovedEmailAssembler,
    VerificationEmailAssembler,
)

from conftest import FailingEmailSender


def test_verification_email_contains_code():
    subject, html = VerificationEmailAssembler().assemble("482913", "Jane")
    assert "482913" in subject
    assert "482913" in html
    assert "Hi Jane" in html


def test_names_are_escaped():
    _, html = PasswordResetEmailAssembler().assemble("111222", "<b>Mallory</b>")
    assert "<b>Mallory</b>" not in html
    assert "&lt;b&gt;Mallory&lt;/b&gt;" in html


def test_purchase_approved_shows_expiry_date():
    _, html = PurchaseApprovedEmailAssembler().assemble(
        "course", "Python Basics", None, "2026-08-28T09:30:00+00:00"
    )
    assert "Python Basics" in html
    assert "2026-08-28" in html


def test_smtp_sender_requires_credentials():
    with pytest.raises(EmailDeliveryError):
        SMTPEmailSender(user=None, password=None)


def test_smtp_failure_becomes_delivery_error(monkeypatch):
    class BrokenSMTP:
        def __init__(self, *args, **kwargs):
            raise smtplib.SMTPConnectError(421, b"try later")

    monkeypatch.setattr(smtplib, "SMTP", BrokenSMTP)
    sender = SMTPEmailSender(user="mailer@example.com", password="app-password")

    with pytest.raises(EmailDeliveryError):
        sender.send("jane@example.com", "Hello", "<p>Hi</p>")


def test_smtp_sender_sends(monkeypatch):
    sent = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host = host

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            sent.append("starttls")

        def login(self, user, password):
            sent.append(("login", user))

        def send_message(self, message):
            sent.append(("to", message["To"]))

    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    SMTPEmailSender(user="mailer@example.com", password="app-password").send(
        "jane@example.com", "Hello", "<p>Hi</p>"
    )

    assert sent == ["starttls", ("login", "mailer@example.com"), ("to", "jane@example.com")]


def test_codes_propagate_delivery_errors():
    with pytest.raises(EmailDeliveryError):
        Notifier(FailingEmailSender()).send_verification_code("jane@example.com", "123456")


def test_purchase_notice_is_best_effort():
    notifier = Notifier(FailingEmailSender())
    assert notifier.notify_purchase_approved("jane@example.com", "course", "Python") is False
    assert Notifier(NullEmailSender()).notify_purchase_approved("jane@example.com", "course", "Python") is True
