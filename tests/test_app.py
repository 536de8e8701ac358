# tests/test_app.py
import json
import logging

import pytest

from order_backoffice.app import open_session
from order_backoffice.database.repositories import Product, SupplierOffer
from order_backoffice.modules.orders.entities import OrderScope, Stage
from order_backoffice.modules.orders.errors import ValidationError
from order_backoffice.modules.orders.validators import OrderFormValues


@pytest.fixture()
def session(tmp_path):
    log_file = tmp_path / "orders.jsonl"
    s = open_session("tok", OrderScope.KALABA, db_path=":memory:", log_file=log_file, environ={})
    s.catalog.add_product(Product("P9", "Punjac", 5.0, 15.0, supplier_offers=(SupplierOffer("S1", 4.0),)))
    yield s, log_file
    s.close()
    logger = logging.getLogger("order_backoffice")
    for h in list(logger.handlers):
        if isinstance(h, logging.FileHandler):
            logger.removeHandler(h)
            h.close()


def test_end_to_end(qtbot, session):
    s, log_file = session
    s.draft.add_item("P9", quantity=3)
    with qtbot.waitSignal(s.draft.warning):
        created = s.draft.submit(OrderFormValues(
            customer_name="Nikola Nikolic",
            phone="0607654321",
            address="Cara Dusana 5",
            transport_cost="0",
            transport_mode="Joe",
            note="Test",
        ))

    s.list.load_first_page()
    assert [o.id for o in s.list.orders] == [created.id]

    ctrl = s.open_order(created.id)
    ctrl.request_stage_change(Stage.NA_STANJU)
    assert s.orders.get(s.ctx, created.id).stage is Stage.NA_STANJU

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    ops = {(e["extra"]["op"], e["extra"]["phase"]) for e in lines if "extra" in e}
    assert ("create", "commit") in ops
    assert ("update", "commit") in ops


def test_open_unknown_order(session):
    s, _ = session
    with pytest.raises(ValidationError):
        s.open_order("nope")
