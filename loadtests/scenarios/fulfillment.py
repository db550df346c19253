"""Wallet fulfillment load test scenarios.

A merchant journey that tops up its wallet, then places orders and fulfills
them from the wallet. Many merchants debiting at once keeps
the wallet's optimistic concurrency path busy.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import merchant_id, order_data, product_data, supplier_data
from loadtests.helpers.response import extract_error_detail


class WalletFulfillmentJourney(SequentialTaskSet):
    """Register supplier + products -> Top up -> Place order -> Fulfill -> Refresh tracking."""

    def on_start(self):
        self.merchant = merchant_id()
        self.products: list[dict] = []
        self.order_id: str | None = None

        resp = self.client.post("/suppliers", json=supplier_data(), name="POST /suppliers")
        supplier_id = resp.json()["id"]
        for _ in range(3):
            payload = product_data(supplier_id)
            resp = self.client.post("/products", json=payload, name="POST /products")
            self.products.append({"id": resp.json()["id"], "cost": payload["supplier_price_cents"]})

    @task
    def top_up(self):
        with self.client.post(
            f"/wallets/{self.merchant}/credits",
            json={"amount_cents": 50_000, "external_reference": f"pi_lt_{self.merchant}"},
            catch_response=True,
            name="POST /wallets/{id}/credits",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Top-up failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def place_order(self):
        with self.client.post(
            "/merchant-orders",
            json=order_data(self.merchant, self.products),
            catch_response=True,
            name="POST /merchant-orders",
        ) as resp:
            if resp.status_code == 201:
                self.order_id = resp.json()["id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def fulfill(self):
        with self.client.post(
            f"/merchant-orders/{self.order_id}/fulfill",
            catch_response=True,
            name="POST /merchant-orders/{id}/fulfill",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Fulfill failed: {resp.status_code} - {extract_error_detail(resp)}")
            elif not resp.json()["success"]:
                resp.failure(f"Fulfillment declined: {resp.json()['error']}")

    @task
    def check_ledger(self):
        self.client.get(
            f"/wallets/{self.merchant}/transactions?limit=10",
            name="GET /wallets/{id}/transactions",
        )

    @task
    def stop(self):
        self.interrupt()


class WalletFulfillmentUser(HttpUser):
    tasks = [WalletFulfillmentJourney]
    wait_time = between(0.5, 2)


class TrackingSweepUser(HttpUser):
    """Plays the role of the scheduler hitting the maintenance endpoint."""

    wait_time = between(5, 10)
    weight = 1

    @task
    def sweep(self):
        self.client.post("/supplier-orders/tracking/refresh", name="POST /supplier-orders/tracking/refresh")
