"""
Application wiring for one signed-in session: connection, repositories and
the order controllers sharing a single MutationCoordinator.
"""
from __future__ import annotations

from pathlib import Path
import logging
import sqlite3
from typing import Optional

from PySide6.QtCore import QObject

from .config import LOG_PATH
from .database import get_connection
from .database.repositories import CatalogRepo, OrdersRepo
from .modules.orders.controller import OrderController
from .modules.orders.coordinator import MutationCoordinator
from .modules.orders.draft import OrderDraftController
from .modules.orders.entities import OrderScope, SessionContext
from .modules.orders.errors import ValidationError
from .modules.orders.notifications import SmtpOrderNotifier, settings_for_scope
from .modules.orders.order_list import ListFilters, OrderListController
from .utils.loggers import attach_json_file, get_logger

_log = logging.getLogger(__name__)


class OrderSession(QObject):
    def __init__(
        self,
        ctx: SessionContext,
        conn: sqlite3.Connection,
        *,
        notifier: SmtpOrderNotifier | None = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.ctx = ctx
        self.conn = conn
        self.orders = OrdersRepo(conn)
        self.catalog = CatalogRepo(conn)
        self.coordinator = MutationCoordinator(self)
        self.notifier = notifier
        self.list = OrderListController(ctx, self.orders, coordinator=self.coordinator, parent=self)
        self.draft = OrderDraftController(
            ctx, self.orders, self.catalog,
            notifier=notifier, coordinator=self.coordinator, parent=self,
        )

    def open_order(self, order_id: str) -> OrderController:
        order = self.orders.get(self.ctx, order_id)
        if order is None:
            raise ValidationError("Order not found.", field="order")
        return OrderController(
            self.ctx, self.orders, order,
            catalog=self.catalog, coordinator=self.coordinator, parent=self,
        )

    def set_filters(self, filters: ListFilters) -> None:
        self.list.set_filters(filters)

    def close(self) -> None:
        self.conn.close()


def open_session(
    token: str,
    scope: OrderScope | str = OrderScope.DEFAULT,
    *,
    db_path: Path | str | None = None,
    log_file: Path | str | None = LOG_PATH,
    environ=None,
) -> OrderSession:
    """Sign in to one order collection. `log_file=None` keeps logging on stderr only."""
    logger = get_logger("order_backoffice")
    if log_file is not None:
        attach_json_file(logger, log_file)

    ctx = SessionContext(token=token, scope=scope)
    conn = get_connection(db_path)
    notifier = SmtpOrderNotifier(settings_for_scope(ctx.scope, environ=environ))
    missing = notifier.settings.missing()
    if missing:
        _log.warning("Order e-mail is not configured (missing: %s)", ", ".join(missing))
    _log.info("Session opened for scope %s", ctx.scope.value)
    return OrderSession(ctx, conn, notifier=notifier)
