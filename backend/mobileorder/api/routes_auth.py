from fastapi import APIRouter, Depends

from mobileorder.api.deps import get_rate_limiter
from mobileorder.db import get_tx_manager
from mobileorder.schemas.auth_schema import AuthIn, AuthOut
from mobileorder.services.auth_service import AuthService
from mobileorder.services.rate_limiter import RateLimiter
from mobileorder.utils.transactions import TransactionManager

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthOut, status_code=201, summary="Create an account")
def sign_up(
    payload: AuthIn,
    tx: TransactionManager = Depends(get_tx_manager),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    return AuthService(tx, limiter).sign_up(payload.email, payload.guest_order_token)


@router.post("/login", response_model=AuthOut, summary="Log in by email")
def log_in(
    payload: AuthIn,
    tx: TransactionManager = Depends(get_tx_manager),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    return AuthService(tx, limiter).log_in(payload.email, payload.guest_order_token)
