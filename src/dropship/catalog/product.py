"""Product aggregate (CQRS), linking a sellable product to its supplier listing."""

from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, Integer, String

from dropship.catalog.events import ProductRegistered
from dropship.domain import dropship


@dropship.aggregate
class Product:
    title = String(required=True, max_length=255)
    supplier_id = Identifier()  # None for merchant-owned stock that is never routed
    supplier_product_id = String(max_length=255)
    supplier_sku = String(max_length=100)
    variant_id = String(max_length=255)
    supplier_price_cents = Integer(min_value=0)
    created_at = DateTime()

    @classmethod
    def register(
        cls,
        title: str,
        supplier_id: str | None = None,
        supplier_product_id: str | None = None,
        supplier_sku: str | None = None,
        variant_id: str | None = None,
        supplier_price_cents: int | None = None,
    ):
        now = datetime.now(UTC)
        product = cls(
            title=title,
            supplier_id=supplier_id,
            supplier_product_id=supplier_product_id,
            supplier_sku=supplier_sku,
            variant_id=variant_id,
            supplier_price_cents=supplier_price_cents,
            created_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                title=title,
                supplier_id=supplier_id,
                registered_at=now,
            )
        )
        return product
