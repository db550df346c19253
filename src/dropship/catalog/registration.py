"""Supplier and product registration commands and handlers."""

import json

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from dropship.catalog.product import Product
from dropship.catalog.supplier import Supplier
from dropship.domain import dropship


@dropship.command(part_of="Supplier")
class RegisterSupplier:
    """Connect a supplier with its adapter type and credentials."""

    name = String(required=True, max_length=255)
    supplier_type = String(required=True, max_length=20)
    credentials = Text()  # JSON object


@dropship.command(part_of="Supplier")
class DeactivateSupplier:
    supplier_id = Identifier(required=True)


@dropship.command(part_of="Product")
class RegisterProduct:
    """Link a product to the supplier listing that ships it."""

    title = String(required=True, max_length=255)
    supplier_id = Identifier()
    supplier_product_id = String(max_length=255)
    supplier_sku = String(max_length=100)
    variant_id = String(max_length=255)
    supplier_price_cents = Integer(min_value=0)


@dropship.command_handler(part_of=Supplier)
class SupplierRegistrationHandler:
    @handle(RegisterSupplier)
    def register_supplier(self, command):
        credentials = json.loads(command.credentials) if command.credentials else {}
        supplier = Supplier.register(
            name=command.name,
            supplier_type=command.supplier_type,
            credentials=credentials,
        )
        current_domain.repository_for(Supplier).add(supplier)
        return str(supplier.id)

    @handle(DeactivateSupplier)
    def deactivate_supplier(self, command):
        repo = current_domain.repository_for(Supplier)
        supplier = repo.get(command.supplier_id)
        supplier.deactivate()
        repo.add(supplier)


@dropship.command_handler(part_of=Product)
class ProductRegistrationHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            title=command.title,
            supplier_id=command.supplier_id,
            supplier_product_id=command.supplier_product_id,
            supplier_sku=command.supplier_sku,
            variant_id=command.variant_id,
            supplier_price_cents=command.supplier_price_cents,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)
