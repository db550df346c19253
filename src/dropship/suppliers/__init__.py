"""Supplier adapter factory.

Provides get_supplier_adapter() / set_adapter() to resolve and swap the
adapter used for a registered supplier:
- FakeSupplier for ``fake`` suppliers (and for every supplier when
  SUPPLIER_ADAPTER_OVERRIDE=fake, handy in development)
- CustomApiSupplier for ``custom`` suppliers
- ShopifySupplier and WooCommerceSupplier for suppliers selling from
  those store platforms

Adapters are cached per supplier id so a supplier keeps one HTTP session
(or one fake's scripted state) for the life of the process.
"""

import os

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from dropship.catalog.supplier import REQUIRED_CREDENTIALS, Supplier, SupplierType
from dropship.suppliers.custom_api_adapter import CustomApiSupplier
from dropship.suppliers.fake_adapter import FakeSupplier
from dropship.suppliers.port import SupplierAdapter
from dropship.suppliers.shopify_adapter import ShopifySupplier
from dropship.suppliers.woocommerce_adapter import WooCommerceSupplier

logger = structlog.get_logger(__name__)

_adapters: dict[str, SupplierAdapter] = {}


def build_adapter(supplier: Supplier) -> SupplierAdapter:
    """Construct a fresh adapter for a supplier from its type and credentials."""
    if os.getenv("SUPPLIER_ADAPTER_OVERRIDE", "").lower() == "fake":
        return FakeSupplier(name=supplier.name)

    kind = SupplierType(supplier.supplier_type)
    if kind == SupplierType.FAKE:
        return FakeSupplier(name=supplier.name)
    if kind == SupplierType.CUSTOM:
        return CustomApiSupplier.from_credentials(supplier.credentials_dict())
    if kind == SupplierType.SHOPIFY:
        return ShopifySupplier.from_credentials(supplier.credentials_dict())
    if kind == SupplierType.WOOCOMMERCE:
        return WooCommerceSupplier.from_credentials(supplier.credentials_dict())
    raise ValueError(f"No adapter for supplier type: {supplier.supplier_type}")


def get_supplier_adapter(supplier: Supplier) -> SupplierAdapter:
    """Return the (cached) adapter for a supplier."""
    key = str(supplier.id)
    if key not in _adapters:
        _adapters[key] = build_adapter(supplier)
    return _adapters[key]


def set_adapter(supplier_id: str, adapter: SupplierAdapter) -> None:
    """Pin the adapter used for a supplier (useful for tests)."""
    _adapters[str(supplier_id)] = adapter


def reset_adapters() -> None:
    """Forget all cached and pinned adapters."""
    _adapters.clear()


def has_usable_credentials(supplier: Supplier) -> bool:
    credentials = supplier.credentials_dict()
    return all(credentials.get(key) for key in REQUIRED_CREDENTIALS[SupplierType(supplier.supplier_type)])


def resolve_adapter(supplier_id: str | None) -> SupplierAdapter | None:
    """Adapter for an active supplier with usable credentials, else None."""
    if not supplier_id:
        return None
    try:
        supplier = current_domain.repository_for(Supplier).get(supplier_id)
    except ObjectNotFoundError:
        logger.warning("Supplier not found", supplier_id=supplier_id)
        return None
    if not supplier.is_active or not has_usable_credentials(supplier):
        logger.warning(
            "Supplier not usable",
            supplier_id=supplier_id,
            is_active=supplier.is_active,
        )
        return None
    return get_supplier_adapter(supplier)
