import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt

from mobileorder.config import settings
from mobileorder.errors import AppError, ErrCode
from mobileorder.models.user import User, UserRole
from mobileorder.repositories.order_repo import OrderRepository
from mobileorder.repositories.shop_repo import ShopRepository
from mobileorder.repositories.user_repo import UserRepository
from mobileorder.schemas.auth_schema import Claims
from mobileorder.services.rate_limiter import RateLimiter
from mobileorder.utils.transactions import TransactionManager

log = logging.getLogger("auth")


def create_token(claims: Claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": claims.user_id,
        "role": claims.role.value,
        "iat": now,
        "exp": now + timedelta(hours=settings.TOKEN_TTL_HOURS),
    }
    if claims.shop_id is not None:
        payload["shop_id"] = claims.shop_id
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Claims:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise ErrCode.UNAUTHORIZED.wrap(e, "invalid or expired token")
    try:
        return Claims(
            user_id=payload["user_id"],
            role=payload["role"],
            shop_id=payload.get("shop_id"),
        )
    except (KeyError, ValueError) as e:
        raise ErrCode.UNAUTHORIZED.wrap(e, "malformed token claims")


def _validate_email(email: str) -> str:
    email = (email or "").strip()
    if "@" not in email:
        raise ErrCode.VALIDATION_FAILED.wrap(None, "a valid email address is required")
    return email


def _user_view(user: User) -> Dict:
    return {"user_id": user.id, "email": user.email, "role": user.role.value}


class AuthService:
    """Password-less sign-up and login by email, with optional guest order claiming."""

    def __init__(self, tx: TransactionManager, rate_limiter: RateLimiter):
        self.tx = tx
        self.rate_limiter = rate_limiter

    def _claims_for(self, user: User, shops: ShopRepository) -> Claims:
        shop_id = None
        if user.role == UserRole.ADMIN:
            try:
                shop_id = shops.find_shop_id_by_admin_id(user.id)
            except AppError as e:
                if e.code == ErrCode.NO_DATA:
                    raise ErrCode.UNKNOWN.wrap(e, f"admin user {user.id} has no shop")
                raise
        return Claims(user_id=user.id, role=user.role, shop_id=shop_id)

    def sign_up(self, email: str, guest_order_token: Optional[str] = None) -> Dict:
        email = _validate_email(email)

        def fn(users: UserRepository, shops: ShopRepository, orders: OrderRepository):
            user = users.create_user(email)
            if guest_order_token:
                orders.update_owner_by_guest_token(guest_order_token, user.id)
            return user, self._claims_for(user, shops)

        user, claims = self.tx.with_user_shop_order_transaction(fn)
        log.info("user %s signed up%s", user.id, " (guest order linked)" if guest_order_token else "")
        return {"token": create_token(claims), "user": _user_view(user)}

    def log_in(self, email: str, guest_order_token: Optional[str] = None) -> Dict:
        email = _validate_email(email)
        # in memory, before any transaction is opened
        self.rate_limiter.check_rate_limit(email)

        def fn(users: UserRepository, shops: ShopRepository, orders: OrderRepository):
            try:
                user = users.get_user_by_email(email)
            except AppError as e:
                if e.code == ErrCode.NO_DATA:
                    raise ErrCode.UNAUTHORIZED.wrap(None, "invalid login credentials")
                raise
            if guest_order_token:
                orders.update_owner_by_guest_token(guest_order_token, user.id)
            return user, self._claims_for(user, shops)

        try:
            user, claims = self.tx.with_user_shop_order_transaction(fn)
        except AppError:
            self.rate_limiter.record_attempt(email, success=False)
            raise
        self.rate_limiter.record_attempt(email, success=True)
        log.info("user %s logged in", user.id)
        return {"token": create_token(claims), "user": _user_view(user)}
