"""Catalog registry events."""

from protean.fields import DateTime, Identifier, String

from dropship.domain import dropship


@dropship.event(part_of="Supplier")
class SupplierRegistered:
    """A supplier was connected to the platform."""

    __version__ = 1

    supplier_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    supplier_type = String(required=True, max_length=20)
    registered_at = DateTime(required=True)


@dropship.event(part_of="Supplier")
class SupplierDeactivated:
    """A supplier was switched off; its items can no longer be routed."""

    __version__ = 1

    supplier_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@dropship.event(part_of="Product")
class ProductRegistered:
    """A sellable product was linked to its upstream supplier listing."""

    __version__ = 1

    product_id = Identifier(required=True)
    title = String(required=True, max_length=255)
    supplier_id = Identifier()
    registered_at = DateTime(required=True)
