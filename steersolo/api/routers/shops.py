from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.api.schemas import (
    AddressOut,
    AddressRequest,
    ProductAvailabilityRequest,
    ProductCreateRequest,
    ProductOut,
    ReviewRequest,
    ShopCreateRequest,
    ShopOut,
)
from steersolo.infrastructure.db.models import Shop
from steersolo.services.product_service import ProductService
from steersolo.services.shop_service import ShopService
from steersolo.services.whatsapp import inquiry_message, product_inquiry_message, whatsapp_link

router = APIRouter(prefix="/shops", tags=["shops"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_shop(payload: ShopCreateRequest, profile: CurrentProfile, session: SessionDependency) -> ShopOut:
    shop = await ShopService(session).create_shop(
        profile,
        shop_name=payload.shop_name,
        description=payload.description,
        whatsapp_number=payload.whatsapp_number,
        payment_method=payload.payment_method,
        logo_url=payload.logo_url,
        banner_url=payload.banner_url,
    )
    return ShopOut.model_validate(shop)


def _shop_payload(shop: Shop) -> dict[str, Any]:
    payload = ShopOut.model_validate(shop).model_dump(mode="json")
    payload["whatsapp_link"] = whatsapp_link(shop.whatsapp_number, inquiry_message(shop.shop_name))
    return payload


@router.get("/by-slug/{slug}")
async def get_shop_by_slug(slug: str, session: SessionDependency) -> dict[str, Any]:
    return _shop_payload(await ShopService(session).require_shop_by_slug(slug))


@router.get("/{shop_id}")
async def get_shop(shop_id: int, session: SessionDependency) -> dict[str, Any]:
    return _shop_payload(await ShopService(session).require_shop(shop_id))


@router.get("/{shop_id}/products")
async def list_products(shop_id: int, session: SessionDependency) -> list[dict[str, Any]]:
    shop = await ShopService(session).require_shop(shop_id)
    products = await ProductService(session).list_products(shop, available_only=True)
    results = []
    for product in products:
        item = ProductOut.model_validate(product).model_dump(mode="json")
        item["whatsapp_link"] = whatsapp_link(
            shop.whatsapp_number,
            product_inquiry_message(shop.shop_name, product.name),
        )
        results.append(item)
    return results


@router.post("/{shop_id}/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    shop_id: int,
    payload: ProductCreateRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> ProductOut:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    product = await ProductService(session).create_product(
        profile,
        shop,
        name=payload.name,
        price=payload.price,
        description=payload.description,
        image_url=payload.image_url,
        category=payload.category,
        stock_quantity=payload.stock_quantity,
    )
    return ProductOut.model_validate(product)


@router.patch("/{shop_id}/products/{product_id}")
async def set_product_availability(
    shop_id: int,
    product_id: int,
    payload: ProductAvailabilityRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> ProductOut:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    product = await ProductService(session).set_availability(shop, product_id, payload.is_available)
    return ProductOut.model_validate(product)


@router.get("/{shop_id}/addresses")
async def list_addresses(shop_id: int, profile: CurrentProfile, session: SessionDependency) -> list[AddressOut]:
    service = ShopService(session)
    shop = await service.require_owned_shop(shop_id, profile)
    return [AddressOut.model_validate(address) for address in await service.list_addresses(shop)]


@router.post("/{shop_id}/addresses", status_code=status.HTTP_201_CREATED)
async def create_address(
    shop_id: int,
    payload: AddressRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> AddressOut:
    service = ShopService(session)
    shop = await service.require_owned_shop(shop_id, profile)
    address = await service.save_address(shop, **payload.model_dump())
    return AddressOut.model_validate(address)


@router.put("/{shop_id}/addresses/{address_id}")
async def update_address(
    shop_id: int,
    address_id: int,
    payload: AddressRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> AddressOut:
    service = ShopService(session)
    shop = await service.require_owned_shop(shop_id, profile)
    address = await service.save_address(shop, address_id=address_id, **payload.model_dump())
    return AddressOut.model_validate(address)


@router.delete("/{shop_id}/addresses/{address_id}")
async def delete_address(
    shop_id: int,
    address_id: int,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    service = ShopService(session)
    shop = await service.require_owned_shop(shop_id, profile)
    await service.delete_address(shop, address_id)
    return {"success": True}


@router.post("/{shop_id}/reviews", status_code=status.HTTP_201_CREATED)
async def add_review(shop_id: int, payload: ReviewRequest, session: SessionDependency) -> dict[str, Any]:
    service = ShopService(session)
    shop = await service.require_shop(shop_id)
    review = await service.add_review(shop, **payload.model_dump())
    return {
        "id": review.id,
        "rating": review.rating,
        "average_rating": float(shop.average_rating),
        "total_reviews": shop.total_reviews,
    }
