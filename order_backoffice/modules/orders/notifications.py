"""
modules/orders/notifications.py

Best-effort "new order" e-mail, sent once after a successful create.

Bodies are rendered from Jinja2 templates in order_backoffice/templates and
delivered over SMTP with aiosmtplib. Any problem (incomplete settings,
template or SMTP error) surfaces as NotificationFailure; the caller decides
how loud to be about it. Nothing here touches the order itself.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr
import logging
from typing import Awaitable, Callable, Optional

import aiosmtplib
from jinja2 import Environment, PackageLoader, select_autoescape

from ...config import EMAIL_TO_ENV_KEYS, SmtpSettings
from ...constants import UNKNOWN_SUPPLIER_LABEL
from ...utils.helpers import fmt_money
from ...utils.loggers import log_event
from .entities import Order, OrderScope
from .errors import NotificationFailure

_log = logging.getLogger(__name__)

SUBJECT_PREFIX = "Nova narudzbina"
PICKUP_MARKER = "Licno preuzimanje"
TEMPLATE_TEXT = "order_email.txt.j2"
TEMPLATE_HTML = "order_email.html.j2"

_env: Optional[Environment] = None


def _template_env() -> Environment:
    global _env
    if _env is None:
        _env = Environment(
            loader=PackageLoader("order_backoffice", "templates"),
            autoescape=select_autoescape(enabled_extensions=("html", "html.j2"), default_for_string=False),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        _env.filters["money"] = fmt_money
    return _env


@dataclass(frozen=True)
class OrderEmailItem:
    title: str
    quantity: int
    purchase_price: float
    sale_price: float
    supplier_name: str
    note: str | None = None


@dataclass(frozen=True)
class OrderEmail:
    customer_name: str
    phone: str
    pickup: bool
    address: str
    items: list[OrderEmailItem] = field(default_factory=list)

    @property
    def subject(self) -> str:
        return f"{SUBJECT_PREFIX}: {self.customer_name}"


def build_order_email(order: Order, supplier_names: dict[str, str] | None = None) -> OrderEmail:
    names = supplier_names or {}
    items = [
        OrderEmailItem(
            title=it.title,
            quantity=it.quantity,
            purchase_price=it.purchase_price,
            sale_price=it.sale_price,
            supplier_name=names.get(it.supplier_id or "") or UNKNOWN_SUPPLIER_LABEL,
            note=order.note,
        )
        for it in order.items
    ]
    return OrderEmail(
        customer_name=order.customer_name,
        phone=order.phone,
        pickup=order.pickup,
        address=order.address,
        items=items,
    )


def render_order_email(payload: OrderEmail) -> tuple[str, str, str]:
    """Return (subject, text body, html body)."""
    env = _template_env()
    context = {"order": payload, "pickup_marker": PICKUP_MARKER}
    text = env.get_template(TEMPLATE_TEXT).render(**context)
    html = env.get_template(TEMPLATE_HTML).render(**context)
    return payload.subject, text, html


def settings_for_scope(scope: OrderScope | str, environ=None) -> SmtpSettings:
    key = EMAIL_TO_ENV_KEYS[OrderScope(scope).value]
    return SmtpSettings.from_env(to_env_key=key, environ=environ)


SendFn = Callable[..., Awaitable[object]]


class SmtpOrderNotifier:
    """
    Deliver the order e-mail. `send_fn` defaults to aiosmtplib.send and is
    awaited on a private event loop, so callers stay synchronous.
    """

    def __init__(self, settings: SmtpSettings, *, send_fn: SendFn | None = None, timeout: float = 20.0):
        self.settings = settings
        self._send_fn = send_fn or aiosmtplib.send
        self.timeout = timeout

    def build_message(self, payload: OrderEmail) -> EmailMessage:
        s = self.settings
        subject, text, html = render_order_email(payload)
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((s.sender_name, s.sender)) if s.sender_name else s.sender
        msg["To"] = ", ".join(s.recipients)
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def send(self, payload: OrderEmail) -> None:
        s = self.settings
        missing = s.missing()
        if missing or not s.recipients:
            raise NotificationFailure(
                "E-mail is not configured (missing: %s)." % ", ".join(missing or [s.to_env_key])
            )
        try:
            message = self.build_message(payload)
            asyncio.run(
                self._send_fn(
                    message,
                    hostname=s.host,
                    port=s.port,
                    username=s.user,
                    password=s.password,
                    use_tls=s.port == 465,
                    timeout=self.timeout,
                )
            )
        except Exception as e:
            log_event(
                _log, "create", "notify", "Order e-mail failed",
                {"error": str(e), "customer": payload.customer_name}, level=logging.WARNING,
            )
            raise NotificationFailure("The order was saved, but the e-mail could not be sent.") from e
        log_event(_log, "create", "notify", "Order e-mail sent", {"recipients": len(s.recipients)})
