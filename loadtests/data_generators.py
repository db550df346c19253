"""Faker-based payload generators for the load test scenarios.

Payloads match the field names of the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker()


def merchant_id() -> str:
    return f"merchant-lt-{uuid.uuid4().hex[:8]}"


def supplier_data() -> dict:
    return {
        "name": f"{fake.company()} Supply",
        "supplier_type": "fake",
        "credentials": {},
    }


def product_data(supplier_id: str) -> dict:
    cost = random.randint(200, 4000)
    return {
        "title": fake.catch_phrase(),
        "supplier_id": supplier_id,
        "supplier_product_id": f"sp-{uuid.uuid4().hex[:10]}",
        "supplier_sku": f"SKU-{random.randint(1000, 9999)}",
        "supplier_price_cents": cost,
    }


def shipping_address() -> dict:
    return {
        "first_name": fake.first_name(),
        "last_name": fake.last_name(),
        "address1": fake.street_address(),
        "city": fake.city(),
        "province": fake.state_abbr(),
        "country": "US",
        "zip": fake.zipcode(),
        "email": fake.email(),
    }


def order_data(merchant: str, products: list[dict]) -> dict:
    """An order with one to three lines drawn from ``products`` (dicts with id and cost)."""
    chosen = random.sample(products, k=min(len(products), random.randint(1, 3)))
    return {
        "merchant_id": merchant,
        "order_number": f"LT-{random.randint(10000, 99999)}",
        "items": [
            {
                "product_id": product["id"],
                "quantity": random.randint(1, 3),
                "unit_cost_cents": product["cost"],
                "unit_price_cents": product["cost"] * 2,
            }
            for product in chosen
        ],
        "shipping_address": shipping_address(),
    }
