import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from mobileorder.errors import ErrCode
from mobileorder.repositories.item_repo import ItemRepository
from mobileorder.repositories.order_repo import OrderRepository
from mobileorder.repositories.shop_repo import ShopRepository
from mobileorder.repositories.user_repo import UserRepository

log = logging.getLogger("transactions")

T = TypeVar("T")
RepoFactory = Callable[[Session], object]


class TransactionManager:
    """
    Unit of work over one database transaction.

    Business code never sees the session: it receives repositories bound to the
    transaction and either returns (commit) or raises (rollback, exception
    re-raised unchanged). Every call opens its own session, so scopes never nest.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def scope(self, *repo_factories: RepoFactory) -> Iterator[Tuple]:
        """
        Usage:
            with tx.scope(UserRepository, OrderRepository) as (users, orders):
                ... repository calls ...
        """
        session = self.session_factory()
        try:
            try:
                session.begin()
            except SQLAlchemyError as e:
                raise ErrCode.UNKNOWN.wrap(e, "failed to begin transaction")

            repos = tuple(factory(session) for factory in repo_factories)
            try:
                yield repos
            except BaseException as exc:
                # AppErrors, programming errors and interrupts alike: undo, then propagate
                self._rollback(session, exc)
                raise

            try:
                session.commit()
            except SQLAlchemyError as e:
                self._rollback(session, e)
                raise ErrCode.UNKNOWN.wrap(e, "failed to commit transaction")
        finally:
            session.close()

    def with_transaction(self, fn: Callable[..., T], *repo_factories: RepoFactory) -> T:
        with self.scope(*repo_factories) as repos:
            return fn(*repos)

    def with_order_transaction(self, fn: Callable[[OrderRepository], T]) -> T:
        return self.with_transaction(fn, OrderRepository)

    def with_item_order_transaction(
        self, fn: Callable[[ItemRepository, OrderRepository], T]
    ) -> T:
        return self.with_transaction(fn, ItemRepository, OrderRepository)

    def with_user_order_transaction(
        self, fn: Callable[[UserRepository, OrderRepository], T]
    ) -> T:
        return self.with_transaction(fn, UserRepository, OrderRepository)

    def with_user_shop_order_transaction(
        self, fn: Callable[[UserRepository, ShopRepository, OrderRepository], T]
    ) -> T:
        return self.with_transaction(fn, UserRepository, ShopRepository, OrderRepository)

    @staticmethod
    def _rollback(session: Session, original: BaseException):
        try:
            session.rollback()
        except SQLAlchemyError as rb_err:
            log.error(
                "transaction rollback failed: %s, original error: %r", rb_err, original
            )
