from typing import Optional

from fastapi import Depends, Header, Request

from mobileorder.errors import ErrCode
from mobileorder.models.user import UserRole
from mobileorder.schemas.auth_schema import Claims
from mobileorder.services.auth_service import decode_token
from mobileorder.services.rate_limiter import RateLimiter


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_claims(authorization: Optional[str] = Header(None)) -> Claims:
    if not authorization:
        raise ErrCode.UNAUTHORIZED.wrap(None, "missing bearer token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise ErrCode.UNAUTHORIZED.wrap(None, "missing bearer token")
    return decode_token(token.strip())


def require_admin(claims: Claims = Depends(get_claims)) -> Claims:
    if claims.role != UserRole.ADMIN:
        raise ErrCode.FORBIDDEN.wrap(None, "admin role required")
    if claims.shop_id is None:
        raise ErrCode.FORBIDDEN.wrap(None, "admin is not associated with a shop")
    return claims


def authorize_shop_access(claims: Claims, shop_id: int):
    if claims.shop_id != shop_id:
        raise ErrCode.FORBIDDEN.wrap(None, "no access to this shop")

