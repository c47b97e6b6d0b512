import pytest
from sqlalchemy.exc import OperationalError

from mobileorder.errors import AppError, ErrCode
from mobileorder.models.order import Order, OrderItem, OrderStatus
from mobileorder.repositories.order_repo import OrderRepository
from mobileorder.services.admin_service import AdminService
from mobileorder.services.order_service import OrderService


def _place(tx, seed, user=None, qty=1):
    svc = OrderService(tx)
    lines = [{"item_id": seed.item_a, "quantity": qty}]
    if user is None:
        return svc.create_guest_order(seed.shop1, lines)["order_id"]
    return svc.create_authenticated_order(user, seed.shop1, lines)["order_id"]


def _status(session_factory, order_id):
    db = session_factory()
    try:
        return db.get(Order, order_id).status
    finally:
        db.close()


def test_status_moves_one_step_at_a_time(tx, session_factory, seed):
    order_id = _place(tx, seed, seed.alice)
    admin = AdminService(tx)

    assert admin.advance_order_status(seed.shop1, order_id)["status"] == "completed"
    assert admin.advance_order_status(seed.shop1, order_id)["status"] == "handed"

    with pytest.raises(AppError) as exc:
        admin.advance_order_status(seed.shop1, order_id)
    assert exc.value.code == ErrCode.CONFLICT
    assert "handed" in exc.value.message
    assert _status(session_factory, order_id) == OrderStatus.HANDED


def test_other_shop_and_missing_order_look_the_same(tx, session_factory, seed):
    order_id = _place(tx, seed, seed.alice)
    admin = AdminService(tx)

    for shop_id, oid in [(seed.shop2, order_id), (seed.shop1, 12345)]:
        with pytest.raises(AppError) as exc:
            admin.advance_order_status(shop_id, oid)
        assert exc.value.code == ErrCode.NO_DATA
    assert _status(session_factory, order_id) == OrderStatus.COOKING


def test_stale_expected_status_is_a_conflict(tx, session_factory, seed):
    order_id = _place(tx, seed, seed.alice)
    AdminService(tx).advance_order_status(seed.shop1, order_id)

    with pytest.raises(AppError) as exc:
        with tx.scope(OrderRepository) as (orders,):
            orders.update_order_status(
                order_id, seed.shop1, OrderStatus.COMPLETED, expected_status=OrderStatus.COOKING
            )
    assert exc.value.code == ErrCode.CONFLICT
    assert _status(session_factory, order_id) == OrderStatus.COMPLETED


def test_delete_removes_order_and_line_items(tx, session_factory, seed):
    keep = _place(tx, seed, seed.bob)
    order_id = _place(tx, seed, seed.alice)
    admin = AdminService(tx)

    with pytest.raises(AppError) as exc:
        admin.delete_order(seed.shop2, order_id)
    assert exc.value.code == ErrCode.NO_DATA

    admin.delete_order(seed.shop1, order_id)
    db = session_factory()
    try:
        assert [o.id for o in db.query(Order).all()] == [keep]
        assert [l.order_id for l in db.query(OrderItem).all()] == [keep]
    finally:
        db.close()


def test_delete_ignores_status(tx, seed):
    order_id = _place(tx, seed, seed.alice)
    admin = AdminService(tx)
    admin.advance_order_status(seed.shop1, order_id)
    admin.advance_order_status(seed.shop1, order_id)
    admin.delete_order(seed.shop1, order_id)
    with pytest.raises(AppError):
        admin.advance_order_status(seed.shop1, order_id)


def test_admin_order_page_lists_oldest_first_with_items(tx, seed):
    first = _place(tx, seed, seed.alice, qty=2)
    guest = _place(tx, seed, None)
    done = _place(tx, seed, seed.bob)
    admin = AdminService(tx)
    admin.advance_order_status(seed.shop1, done)

    page = admin.get_admin_order_page(seed.shop1)
    assert [o["order_id"] for o in page["cooking_orders"]] == [first, guest]
    assert [o["order_id"] for o in page["completed_orders"]] == [done]

    head = page["cooking_orders"][0]
    assert head["customer_email"] == "alice@example.com"
    assert head["total_amount"] == 200
    assert head["items"] == [{"item_name": "Ramen", "quantity": 2}]
    assert page["cooking_orders"][1]["customer_email"] is None

    assert [o["order_id"] for o in admin.get_cooking_orders(seed.shop1)] == [first, guest]
    assert [o["order_id"] for o in admin.get_completed_orders(seed.shop1)] == [done]
    assert admin.get_cooking_orders(seed.shop2) == []


def test_storage_failure_on_status_recheck_is_wrapped(tx, seed, monkeypatch):
    with tx.scope(OrderRepository) as (orders,):
        real_query = orders.db.query
        calls = []

        def query(*entities, **kwargs):
            calls.append(entities)
            if len(calls) == 2:
                raise OperationalError("SELECT", {}, Exception("connection lost"))
            return real_query(*entities, **kwargs)

        monkeypatch.setattr(orders.db, "query", query)
        with pytest.raises(AppError) as exc:
            orders.update_order_status(
                12345, seed.shop1, OrderStatus.COMPLETED, expected_status=OrderStatus.COOKING
            )
        monkeypatch.undo()
    assert exc.value.code == ErrCode.GET_DATA_FAILED
    assert isinstance(exc.value.err, OperationalError)
