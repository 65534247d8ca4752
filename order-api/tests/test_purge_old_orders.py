from datetime import timedelta

import pytest
from sqlalchemy import event

from conftest import NOW
from orderdesk.db.models import Order, OrderItem, OrderItemOption, OrderStatus, PrintJob, PrintJobType
from orderdesk.jobs.purge_old_orders import purge_old_orders
from orderdesk.services.print_jobs import enqueue_print_job


class TestPurgeOldOrders:
    def test_deletes_old_printed_orders_with_children(self, db, make_order):
        old_id = make_order(status=OrderStatus.PRINTED, created_at=NOW - timedelta(days=8)).order_id
        recent = make_order(status=OrderStatus.PRINTED, created_at=NOW - timedelta(days=6))
        old_new = make_order(status=OrderStatus.NEW, created_at=NOW - timedelta(days=30))
        old_printing = make_order(status=OrderStatus.PRINTING, created_at=NOW - timedelta(days=30))

        result = purge_old_orders(db, NOW, retention_days=7)

        assert result.deleted_orders == 1
        assert result.deleted_items == 1
        assert result.deleted_options == 2
        assert result.cutoff == NOW - timedelta(days=7)
        assert result.retention_days == 7

        remaining = {oid for (oid,) in db.query(Order.order_id).all()}
        assert remaining == {recent.order_id, old_new.order_id, old_printing.order_id}
        assert old_id not in remaining
        assert db.query(OrderItem).count() == 3
        assert db.query(OrderItemOption).count() == 6

    def test_exactly_at_cutoff_is_kept(self, db, make_order):
        make_order(status=OrderStatus.PRINTED, created_at=NOW - timedelta(days=7))
        assert purge_old_orders(db, NOW, retention_days=7).deleted_orders == 0

    def test_nothing_to_delete(self, db, store):
        result = purge_old_orders(db, NOW)
        assert (result.deleted_orders, result.deleted_items, result.deleted_options) == (0, 0, 0)

    def test_rerun_is_noop(self, db, make_order):
        make_order(status=OrderStatus.PRINTED, created_at=NOW - timedelta(days=10))
        assert purge_old_orders(db, NOW).deleted_orders == 1
        assert purge_old_orders(db, NOW).deleted_orders == 0

    def test_print_jobs_outlive_their_order(self, db, make_order):
        order = make_order(status=OrderStatus.PRINTED, created_at=NOW - timedelta(days=10))
        enqueue_print_job(db, order.store_id, PrintJobType.KITCHEN_ORDER, NOW, order_id=order.order_id)

        purge_old_orders(db, NOW)

        assert db.query(PrintJob).count() == 1

    def test_failure_mid_purge_rolls_everything_back(self, db, engine, make_order):
        make_order(status=OrderStatus.PRINTED, created_at=NOW - timedelta(days=10))

        def fail_order_delete(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith("DELETE FROM ORDERS"):
                raise RuntimeError("connection lost")

        event.listen(engine, "before_cursor_execute", fail_order_delete)
        try:
            with pytest.raises(RuntimeError):
                purge_old_orders(db, NOW)
        finally:
            event.remove(engine, "before_cursor_execute", fail_order_delete)

        assert db.query(Order).count() == 1
        assert db.query(OrderItem).count() == 1
        assert db.query(OrderItemOption).count() == 2
