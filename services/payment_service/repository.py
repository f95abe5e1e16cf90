from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Payment

class PaymentRepository:
    @staticmethod
    async def create_payment(db: AsyncSession, payment: Payment):
        db.add(payment)
        await db.flush()
        return payment

    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: int, for_update: bool = False):
        query = select(Payment).where(Payment.id == payment_id)
        if for_update:
            query = query.with_for_update(of=Payment).execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_payment_by_order(db: AsyncSession, order_id: int):
        result = await db.execute(select(Payment).where(Payment.order_id == order_id))
        return result.scalars().first()
