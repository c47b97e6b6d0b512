import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from mobileorder.errors import AppError, ErrCode
from mobileorder.models.order import Order, OrderItem, OrderStatus
from mobileorder.models.user import User
from mobileorder.repositories.order_repo import OrderRepository
from mobileorder.repositories.user_repo import UserRepository
from mobileorder.utils.transactions import TransactionManager


def _count(session_factory, model):
    db = session_factory()
    try:
        return db.query(model).count()
    finally:
        db.close()


def test_commit_on_success(tx, session_factory, seed):
    user = tx.with_transaction(lambda users: users.create_user("carol@example.com"), UserRepository)
    assert user.id is not None
    assert _count(session_factory, User) == 5


def test_app_error_rolls_back_and_propagates_unchanged(tx, session_factory, seed):
    def fn(users):
        users.create_user("dave@example.com")
        raise ErrCode.CONFLICT.wrap(None, "boom")

    with pytest.raises(AppError) as exc:
        tx.with_transaction(fn, UserRepository)
    assert exc.value.code == ErrCode.CONFLICT
    assert exc.value.message == "boom"
    assert _count(session_factory, User) == 4


def test_unexpected_exception_rolls_back_and_is_not_converted(tx, session_factory, seed):
    def fn(users):
        users.create_user("erin@example.com")
        raise RuntimeError("programming error")

    with pytest.raises(RuntimeError):
        tx.with_transaction(fn, UserRepository)
    assert _count(session_factory, User) == 4


def test_line_item_failure_removes_the_order(tx, session_factory, seed):
    def fn(orders):
        order = Order(
            user_id=seed.alice, shop_id=seed.shop1, total_amount=300, status=OrderStatus.COOKING
        )
        # same (order_id, item_id) twice violates the line item primary key
        lines = [
            OrderItem(item_id=seed.item_a, quantity=1, price_at_order=100),
            OrderItem(item_id=seed.item_a, quantity=2, price_at_order=100),
        ]
        orders.create_order(order, lines)

    with pytest.raises(AppError) as exc:
        tx.with_order_transaction(fn)
    assert exc.value.code == ErrCode.INSERT_DATA_FAILED
    assert _count(session_factory, Order) == 0
    assert _count(session_factory, OrderItem) == 0


def test_multi_repository_scope_shares_one_transaction(tx, session_factory, seed):
    def fn(users, orders):
        user = users.create_user("frank@example.com")
        orders.update_owner_by_guest_token("no-such-token", user.id)

    with pytest.raises(AppError) as exc:
        tx.with_user_order_transaction(fn)
    assert exc.value.code == ErrCode.NO_DATA
    assert _count(session_factory, User) == 4


def test_scope_yields_repositories_in_order(tx, seed):
    with tx.scope(UserRepository, OrderRepository) as (users, orders):
        assert isinstance(users, UserRepository)
        assert isinstance(orders, OrderRepository)
        assert users.db is orders.db


class CommitFails(Session):
    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


class BeginFails(Session):
    def begin(self, *args, **kwargs):
        raise OperationalError("BEGIN", {}, Exception("database is locked"))


def test_commit_failure_is_unknown_and_persists_nothing(engine, session_factory, seed):
    failing = TransactionManager(
        sessionmaker(class_=CommitFails, autoflush=False, expire_on_commit=False, bind=engine)
    )
    with pytest.raises(AppError) as exc:
        failing.with_transaction(lambda users: users.create_user("gina@example.com"), UserRepository)
    assert exc.value.code == ErrCode.UNKNOWN
    assert isinstance(exc.value.err, OperationalError)
    assert _count(session_factory, User) == 4


def test_begin_failure_is_unknown_and_never_runs_the_callback(engine, seed):
    failing = TransactionManager(
        sessionmaker(class_=BeginFails, autoflush=False, expire_on_commit=False, bind=engine)
    )
    calls = []
    with pytest.raises(AppError) as exc:
        failing.with_transaction(calls.append, UserRepository)
    assert exc.value.code == ErrCode.UNKNOWN
    assert calls == []
