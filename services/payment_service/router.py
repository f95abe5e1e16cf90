from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import PAYMENT_RATE_LIMIT, Principal, get_current_principal, limiter

from .schemas import PaymentCreate, PaymentResponse, PaymentStatusUpdate
from .service import PaymentService
from .settlement import SettlementStrategy, get_settlement_strategy

router = APIRouter(tags=["Payments"])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.post("/", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(PAYMENT_RATE_LIMIT)
async def process_payment(
    request: Request,
    payment: PaymentCreate,
    principal: Principal = Depends(get_current_principal),
    settlement: SettlementStrategy = Depends(get_settlement_strategy),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService.process_payment(db, principal, payment, settlement)


@router.get("/order/{order_id}", response_model=PaymentResponse)
async def get_payment_by_order(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService.get_payment_by_order(db, principal, order_id)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService.get_payment(db, principal, payment_id)


@router.put("/{payment_id}/status", response_model=PaymentResponse)
async def update_payment_status(
    payment_id: int,
    payload: PaymentStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService.update_payment_status(db, principal, payment_id, payload.status)
