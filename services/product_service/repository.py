from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product, Shop

class ShopRepository:

    @staticmethod
    async def create_shop(db: AsyncSession, shop: Shop):
        db.add(shop)
        await db.flush()
        return shop

    @staticmethod
    async def get_shop(db: AsyncSession, shop_id: int):
        result = await db.execute(select(Shop).where(Shop.id == shop_id))
        return result.scalars().first()

    @staticmethod
    async def get_shop_by_owner(db: AsyncSession, owner_id: int):
        result = await db.execute(select(Shop).where(Shop.owner_id == owner_id))
        return result.scalars().first()

    @staticmethod
    async def get_shop_by_name(db: AsyncSession, name: str):
        result = await db.execute(select(Shop).where(Shop.name == name))
        return result.scalars().first()


class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.flush()
        return product

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int):
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def get_products_by_shop(db: AsyncSession, shop_id: int):
        result = await db.execute(
            select(Product).where(Product.shop_id == shop_id).order_by(Product.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def lock_products(db: AsyncSession, product_ids: list[int]):
        """Row-lock the given products in ascending id order (no-op on SQLite)."""
        result = await db.execute(
            select(Product)
            .where(Product.id.in_(product_ids))
            .order_by(Product.id)
            .with_for_update(of=Product)
            .execution_options(populate_existing=True)
        )
        return {product.id: product for product in result.scalars().all()}
