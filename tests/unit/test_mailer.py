"""
Unit tests for the invitation email builder and sender.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

from personaops import config
from personaops.utils import mailer


def _parts(msg):
    plain, html = msg.get_payload()
    return plain.get_payload(decode=True).decode(), html.get_payload(decode=True).decode()


def test_signup_link_encodes_the_address(monkeypatch):
    monkeypatch.setattr(config, "FRONTEND_URL", "https://app.test")
    plain, html = _parts(mailer.build_invitation("ada+ops@acme.com", "lead@acme.com"))
    assert "https://app.test/signup?email=ada%2Bops@acme.com" in plain
    assert 'href="https://app.test/signup?email=ada%2Bops@acme.com"' in html


def test_html_part_escapes_inviter(monkeypatch):
    monkeypatch.setattr(config, "FRONTEND_URL", "https://app.test")
    plain, html = _parts(mailer.build_invitation("new@acme.com", "<b>eve</b>@acme.com"))
    assert "&lt;b&gt;eve&lt;/b&gt;@acme.com invited you" in html
    assert "<b>eve</b>@acme.com invited you" in plain


def test_headers(monkeypatch):
    monkeypatch.setattr(config, "SMTP_FROM", "noreply@personaops.test")
    msg = mailer.build_invitation("new@acme.com")
    assert msg["To"] == "new@acme.com"
    assert msg["Subject"] == "You're invited to PersonaOps"
    assert "A teammate invited you" in _parts(msg)[0]


def test_skipped_without_smtp(monkeypatch):
    monkeypatch.setattr(config, "SMTP_HOST", "")
    assert mailer.send_invitation_email("new@acme.com") is False


def test_sends_over_starttls(monkeypatch):
    monkeypatch.setattr(config, "SMTP_HOST", "smtp.test")
    monkeypatch.setattr(config, "SMTP_USER", "bot")
    monkeypatch.setattr(config, "SMTP_PASS", "pw")
    sent = {}

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            sent["host"] = host

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            sent["tls"] = True

        def login(self, user, password):
            sent["login"] = (user, password)

        def sendmail(self, from_addr, to_addrs, body):
            sent["to"] = to_addrs

    monkeypatch.setattr(mailer.smtplib, "SMTP", FakeSMTP)
    assert mailer.send_invitation_email("new@acme.com") is True
    assert sent == {"host": "smtp.test", "tls": True, "login": ("bot", "pw"), "to": ["new@acme.com"]}
