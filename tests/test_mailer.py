import smtplib

import pytest

from catan.errors import InvalidArgument, Unexpected
from catan.services.mailer import Mailer, send_welcome

pytestmark = pytest.mark.anyio


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port = host, port
        self.calls = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user))

    def send_message(self, msg):
        self.messages.append(msg)


class BrokenSMTP(FakeSMTP):
    def send_message(self, msg):
        raise smtplib.SMTPException("boom")


@pytest.fixture(autouse=True)
def _reset():
    FakeSMTP.instances.clear()


async def test_send_mail_uses_starttls_and_login(monkeypatch):
    monkeypatch.setattr("catan.services.mailer.smtplib.SMTP", FakeSMTP)
    mailer = Mailer("smtp.test", 587, user="bot", password="secret", sender="no-reply@catan.test")

    await mailer.send_mail("donnis@donnis.net", "Hi", text="hello", html="<b>hello</b>")

    (smtp,) = FakeSMTP.instances
    assert (smtp.host, smtp.port) == ("smtp.test", 587)
    assert smtp.calls == ["starttls", ("login", "bot")]
    msg = smtp.messages[0]
    assert msg["To"] == "donnis@donnis.net"
    assert msg["From"] == "no-reply@catan.test"
    assert msg.is_multipart()


async def test_send_mail_requires_fields():
    mailer = Mailer("smtp.test")
    with pytest.raises(InvalidArgument):
        await mailer.send_mail("", "Hi", text="x")
    with pytest.raises(InvalidArgument):
        await mailer.send_mail("a@b.co", "Hi")


async def test_delivery_failure_is_unexpected(monkeypatch):
    monkeypatch.setattr("catan.services.mailer.smtplib.SMTP", BrokenSMTP)
    with pytest.raises(Unexpected):
        await Mailer("smtp.test").send_mail("a@b.co", "Hi", text="x")


async def test_welcome_mail_swallows_delivery_failure(monkeypatch):
    monkeypatch.setattr("catan.services.mailer.smtplib.SMTP", BrokenSMTP)
    await send_welcome(Mailer("smtp.test"), 1, "donnis", "donnis@donnis.net")


async def test_welcome_failure_logs_account_id_only(monkeypatch, caplog):
    monkeypatch.setattr("catan.services.mailer.smtplib.SMTP", BrokenSMTP)
    with caplog.at_level("WARNING", logger="catan.services.mailer"):
        await send_welcome(Mailer("smtp.test"), 42, "donnis", "donnis@donnis.net")
    warning = [r for r in caplog.records if r.levelname == "WARNING"][-1].getMessage()
    assert "42" in warning
    assert "donnis" not in warning
