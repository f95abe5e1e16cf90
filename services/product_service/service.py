import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import transaction
from shared.errors import Conflict, InvalidRequest, NotFound
from shared.security import Principal, ensure_owner, require_principal

from .inventory import InventoryLedger
from .models import Product, Shop
from .repository import ProductRepository, ShopRepository
from .schemas import ProductCreate, ProductUpdate, ShopCreate, ShopUpdate

logger = structlog.get_logger(__name__)


class ShopService:

    @staticmethod
    async def create_shop(db: AsyncSession, principal: Principal, data: ShopCreate) -> Shop:
        require_principal(principal)
        async with transaction(db, conflict="Shop already exists"):
            if await ShopRepository.get_shop_by_owner(db, principal.user_id):
                raise Conflict("User already has a shop")
            if await ShopRepository.get_shop_by_name(db, data.name):
                raise Conflict("Shop name already exists")
            shop = await ShopRepository.create_shop(
                db,
                Shop(name=data.name, description=data.description, owner_id=principal.user_id),
            )
        logger.info("shop_created", shop_id=shop.id, owner_id=principal.user_id)
        return shop

    @staticmethod
    async def get_shop(db: AsyncSession, shop_id: int) -> Shop:
        shop = await ShopRepository.get_shop(db, shop_id)
        if not shop:
            raise NotFound("Shop", "id", shop_id)
        return shop

    @staticmethod
    async def get_shop_by_owner(db: AsyncSession, principal: Principal) -> Shop:
        require_principal(principal)
        shop = await ShopRepository.get_shop_by_owner(db, principal.user_id)
        if not shop:
            raise NotFound("Shop", "ownerId", principal.user_id)
        return shop

    @staticmethod
    async def update_shop(db: AsyncSession, principal: Principal, shop_id: int, data: ShopUpdate) -> Shop:
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] is None:
            raise InvalidRequest("Shop name cannot be empty")

        async with transaction(db, conflict="Shop name already exists"):
            shop = await ShopService.get_shop(db, shop_id)
            ensure_owner(principal, shop.owner_id, "Shop")
            if changes.get("name", shop.name) != shop.name:
                existing = await ShopRepository.get_shop_by_name(db, changes["name"])
                if existing and existing.id != shop.id:
                    raise Conflict("Shop name already exists")
            for field, value in changes.items():
                setattr(shop, field, value)
            await db.flush()
        logger.info("shop_updated", shop_id=shop.id, fields=sorted(changes))
        return shop


class ProductService:

    @staticmethod
    async def create_product(
        db: AsyncSession, principal: Principal, shop_id: int, data: ProductCreate
    ) -> Product:
        async with transaction(db):
            shop = await ShopService.get_shop(db, shop_id)
            ensure_owner(principal, shop.owner_id, "Shop")
            product = await ProductRepository.create_product(
                db,
                Product(
                    shop_id=shop.id,
                    name=data.name,
                    description=data.description,
                    price=data.price,
                    stock=data.stock,
                ),
            )
        logger.info("product_created", product_id=product.id, shop_id=shop.id)
        return product

    @staticmethod
    async def get_product(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise NotFound("Product", "id", product_id)
        return product

    @staticmethod
    async def get_products_by_shop(db: AsyncSession, shop_id: int) -> list[Product]:
        await ShopService.get_shop(db, shop_id)
        return await ProductRepository.get_products_by_shop(db, shop_id)

    @staticmethod
    async def restock(db: AsyncSession, principal: Principal, product_id: int, quantity: int) -> Product:
        async with transaction(db):
            product = await ProductService.get_product(db, product_id)
            ensure_owner(principal, product.owner_id, "Product")
            await InventoryLedger.release(db, product_id, quantity)
        return product

    @staticmethod
    async def update_product(
        db: AsyncSession, principal: Principal, product_id: int, data: ProductUpdate
    ) -> Product:
        """Owner-only edit of name, description and price.

        Stock is not editable here; it moves through the inventory ledger.
        Orders already placed keep the price they were placed at.
        """
        changes = data.model_dump(exclude_unset=True)
        for field in ("name", "price"):
            if field in changes and changes[field] is None:
                raise InvalidRequest(f"Product {field} cannot be empty")

        async with transaction(db):
            product = await ProductService.get_product(db, product_id)
            ensure_owner(principal, product.owner_id, "Product")
            for field, value in changes.items():
                setattr(product, field, value)
            await db.flush()
        logger.info("product_updated", product_id=product.id, fields=sorted(changes))
        return product
