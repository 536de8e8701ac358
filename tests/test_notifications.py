# tests/test_notifications.py
import pytest

from order_backoffice.config import SmtpSettings
from order_backoffice.modules.orders.errors import NotificationFailure
from order_backoffice.modules.orders.notifications import (
    SmtpOrderNotifier,
    build_order_email,
    render_order_email,
    settings_for_scope,
)

ENV = {
    "CONTACT_SMTP_HOST": "smtp.example.com",
    "CONTACT_SMTP_PORT": "465",
    "CONTACT_SMTP_USER": "orders@example.com",
    "CONTACT_SMTP_PASS": "secret",
    "CONTACT_EMAIL_FROM": "orders@example.com",
    "CONTACT_EMAIL_FROM_NAME": "Narudzbine",
    "CONTACT_EMAIL_TO": "a@example.com; b@example.com, ",
    "CONTACT_EMAIL_TO_2": "kalaba@example.com",
}


@pytest.fixture()
def shipped_order(make_order, make_item):
    return make_order(
        customer_name="Ivana <Ivic>",
        items=(
            make_item(title="Stona lampa - crna", quantity=2, purchase_price=1050.0,
                      sale_price=2700.0, supplier_id="S2"),
            make_item(title="Kabl", supplier_id=None),
        ),
        note="Lomljivo",
    )


def test_settings_from_env():
    s = SmtpSettings.from_env(environ=ENV)
    assert s.port == 465
    assert s.recipients == ["a@example.com", "b@example.com"]
    assert s.missing() == []

    second = settings_for_scope("kalaba", environ=ENV)
    assert second.recipients == ["kalaba@example.com"]

    bare = SmtpSettings.from_env(environ={"CONTACT_SMTP_PORT": "abc"})
    assert bare.port is None
    assert "CONTACT_SMTP_HOST" in bare.missing()


def test_render(shipped_order):
    payload = build_order_email(shipped_order, {"S2": "Beta"})
    subject, text, html = render_order_email(payload)
    assert subject == "Nova narudzbina: Ivana <Ivic>"
    assert "Ime i prezime kupca: Ivana <Ivic>" in text
    assert "Adresa: Bulevar 1, Novi Sad" in text
    assert "Kolicina: 2" in text
    assert "Nabavna cena: 1,050.00 (Beta)" in text
    assert "(Nepoznat dobavljac)" in text
    assert "Napomena: Lomljivo" in text
    assert "Ivana &lt;Ivic&gt;" in html
    assert "<Ivic>" not in html


def test_render_pickup(shipped_order):
    _, text, _ = render_order_email(build_order_email(shipped_order.with_pickup(True)))
    assert "Licno preuzimanje" in text
    assert "Adresa:" not in text


def test_send_uses_implicit_tls(shipped_order):
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))

    notifier = SmtpOrderNotifier(SmtpSettings.from_env(environ=ENV), send_fn=fake_send)
    notifier.send(build_order_email(shipped_order))

    [(message, kwargs)] = calls
    assert message["Subject"] == "Nova narudzbina: Ivana <Ivic>"
    assert message["To"] == "a@example.com, b@example.com"
    assert "Narudzbine" in message["From"]
    assert kwargs["hostname"] == "smtp.example.com"
    assert kwargs["use_tls"] is True


def test_missing_settings_raise(shipped_order):
    notifier = SmtpOrderNotifier(SmtpSettings.from_env(environ={}))
    with pytest.raises(NotificationFailure) as exc:
        notifier.send(build_order_email(shipped_order))
    assert "CONTACT_SMTP_HOST" in str(exc.value)


def test_smtp_error_becomes_notification_failure(shipped_order):
    async def broken(message, **kwargs):
        raise ConnectionRefusedError("no route")

    notifier = SmtpOrderNotifier(SmtpSettings.from_env(environ=ENV), send_fn=broken)
    with pytest.raises(NotificationFailure) as exc:
        notifier.send(build_order_email(shipped_order))
    assert isinstance(exc.value.__cause__, ConnectionRefusedError)
