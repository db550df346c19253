"""Supplier aggregate (CQRS): the lookup side of routing.

Only what fulfillment needs to resolve a line item to an upstream supplier
and a supplier to its adapter. Catalog search and import live
elsewhere.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, Text

from dropship.catalog.events import SupplierDeactivated, SupplierRegistered
from dropship.domain import dropship


class SupplierType(Enum):
    FAKE = "fake"
    CUSTOM = "custom"
    SHOPIFY = "shopify"
    WOOCOMMERCE = "woocommerce"


# Credential keys each supplier type must carry before an adapter can be built.
REQUIRED_CREDENTIALS = {
    SupplierType.FAKE: (),
    SupplierType.CUSTOM: ("base_url",),
    SupplierType.SHOPIFY: ("store_domain", "access_token"),
    SupplierType.WOOCOMMERCE: ("store_url", "consumer_key", "consumer_secret"),
}


@dropship.aggregate
class Supplier:
    name = String(required=True, max_length=255)
    supplier_type = String(max_length=20, choices=SupplierType, required=True)
    credentials = Text()  # JSON object; shape depends on supplier_type
    is_active = Boolean(default=True)
    created_at = DateTime()

    @classmethod
    def register(cls, name: str, supplier_type: str, credentials: dict | None = None):
        credentials = credentials or {}
        try:
            kind = SupplierType(supplier_type)
        except ValueError:
            raise ValidationError({"supplier_type": [f"Unknown supplier type: {supplier_type}"]}) from None

        missing = [key for key in REQUIRED_CREDENTIALS[kind] if not credentials.get(key)]
        if missing:
            raise ValidationError({"credentials": [f"Missing required credentials: {', '.join(missing)}"]})

        now = datetime.now(UTC)
        supplier = cls(
            name=name,
            supplier_type=supplier_type,
            credentials=json.dumps(credentials),
            is_active=True,
            created_at=now,
        )
        supplier.raise_(
            SupplierRegistered(
                supplier_id=str(supplier.id),
                name=name,
                supplier_type=supplier_type,
                registered_at=now,
            )
        )
        return supplier

    def credentials_dict(self) -> dict:
        if not self.credentials:
            return {}
        return json.loads(self.credentials)

    def deactivate(self) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.raise_(
            SupplierDeactivated(
                supplier_id=str(self.id),
                deactivated_at=datetime.now(UTC),
            )
        )
