from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import Principal, get_current_principal

from .schemas import (
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    ShopCreate,
    ShopResponse,
    ShopUpdate,
    StockUpdate,
)
from .service import ProductService, ShopService

router = APIRouter(tags=["Catalog"])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "catalog", "status": "running"}


@router.post("/shops", response_model=ShopResponse, status_code=status.HTTP_201_CREATED)
async def create_shop(
    payload: ShopCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ShopService.create_shop(db, principal, payload)


@router.get("/shops/my-shop", response_model=ShopResponse)
async def get_my_shop(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ShopService.get_shop_by_owner(db, principal)


@router.get("/shops/{shop_id}", response_model=ShopResponse)
async def get_shop(shop_id: int, db: AsyncSession = Depends(get_db)):
    return await ShopService.get_shop(db, shop_id)


@router.put("/shops/{shop_id}", response_model=ShopResponse)
async def update_shop(
    shop_id: int,
    payload: ShopUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ShopService.update_shop(db, principal, shop_id, payload)


@router.get("/shops/{shop_id}/products", response_model=list[ProductResponse])
async def list_shop_products(shop_id: int, db: AsyncSession = Depends(get_db)):
    return await ProductService.get_products_by_shop(db, shop_id)


@router.post(
    "/shops/{shop_id}/products",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    shop_id: int,
    payload: ProductCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService.create_product(db, principal, shop_id, payload)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await ProductService.get_product(db, product_id)


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService.update_product(db, principal, product_id, payload)


@router.post("/products/{product_id}/restock", response_model=ProductResponse)
async def restock_product(
    product_id: int,
    payload: StockUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService.restock(db, principal, product_id, payload.quantity)
