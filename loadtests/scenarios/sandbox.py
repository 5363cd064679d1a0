"""Sandbox load test scenarios.

Stateful SequentialTaskSet journeys covering the refund ledger (full and
split refunds, declined-amount guard) and the subscription lifecycle
(pause/resume, cancel/reactivate), plus a scheduler user that triggers
billing runs.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    cancellation_data,
    merchant_id,
    partial_amounts,
    pause_reason,
    refund_data,
    subscription_data,
    transaction_data,
)
from loadtests.helpers.response import error_code, extract_error_detail
from loadtests.helpers.state import LedgerState, SubscriptionState


def _headers(state) -> dict:
    return {"X-Merchant-Id": state.merchant_id}


class _LedgerJourney(SequentialTaskSet):
    def on_start(self):
        self.state = LedgerState(merchant_id=merchant_id())

    def _charge(self):
        payload = transaction_data()
        with self.client.post(
            "/transactions",
            json=payload,
            headers=_headers(self.state),
            catch_response=True,
            name="POST /transactions",
        ) as resp:
            if resp.status_code == 201 and resp.json()["status"] == "success":
                self.state.transaction_id = resp.json()["id"]
                self.state.amount = payload["amount"]
            else:
                resp.failure(f"Charge failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    def _refund(self, amount: int):
        with self.client.post(
            "/refunds",
            json=refund_data(self.state.transaction_id, amount),
            headers=_headers(self.state),
            catch_response=True,
            name="POST /refunds",
        ) as resp:
            if resp.status_code == 201:
                self.state.refund_ids.append(resp.json()["id"])
            else:
                resp.failure(f"Refund request failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    def _process_last_refund(self):
        refund_id = self.state.refund_ids[-1]
        with self.client.post(
            f"/refunds/{refund_id}/process",
            headers=_headers(self.state),
            catch_response=True,
            name="POST /refunds/{id}/process",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Refund processing failed: {resp.status_code}: {extract_error_detail(resp)}")
            elif resp.json()["status"] == "completed":
                self.state.refunded_amount += resp.json()["amount"]


class FullRefundJourney(_LedgerJourney):
    """Charge -> Full refund -> Process -> Check stats."""

    @task
    def charge(self):
        self._charge()

    @task
    def request_full_refund(self):
        self._refund(self.state.amount)

    @task
    def process_refund(self):
        self._process_last_refund()

    @task
    def refund_stats(self):
        self.client.get("/refunds/stats", headers=_headers(self.state), name="GET /refunds/stats")

    @task
    def done(self):
        self.interrupt()


class SplitRefundJourney(_LedgerJourney):
    """Charge -> Two partial refunds -> Over-limit refund is rejected.

    Exercises the ledger guard: the third request must come back as
    AMOUNT_EXCEEDED, anything else is a failure.
    """

    @task
    def charge(self):
        self._charge()

    @task
    def partial_refunds(self):
        for amount in partial_amounts(self.state.amount):
            self._refund(amount)
            self._process_last_refund()

    @task
    def over_limit_refund(self):
        with self.client.post(
            "/refunds",
            json=refund_data(self.state.transaction_id, self.state.amount),
            headers=_headers(self.state),
            catch_response=True,
            name="POST /refunds (over limit)",
        ) as resp:
            if resp.status_code == 400 and error_code(resp) == "AMOUNT_EXCEEDED":
                resp.success()
            else:
                resp.failure(f"Expected AMOUNT_EXCEEDED, got {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def list_refunds(self):
        self.client.get(
            "/refunds",
            params={"transaction_id": self.state.transaction_id},
            headers=_headers(self.state),
            name="GET /refunds",
        )

    @task
    def done(self):
        self.interrupt()


class SubscriptionLifecycleJourney(SequentialTaskSet):
    """Create -> Pause -> Resume -> Cancel -> Reactivate (when cancelled)."""

    def on_start(self):
        self.state = SubscriptionState(merchant_id=merchant_id())

    def _transition(self, action: str, json_body: dict | None = None):
        with self.client.post(
            f"/subscriptions/{self.state.subscription_id}/{action}",
            json=json_body,
            headers=_headers(self.state),
            catch_response=True,
            name=f"POST /subscriptions/{{id}}/{action}",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = resp.json()["status"]
            else:
                resp.failure(f"{action} failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_subscription(self):
        with self.client.post(
            "/subscriptions",
            json=subscription_data(trial_days=0),
            headers=_headers(self.state),
            catch_response=True,
            name="POST /subscriptions",
        ) as resp:
            if resp.status_code == 201:
                data = resp.json()
                self.state.subscription_id = data["id"]
                self.state.current_status = data["status"]
                self.state.next_billing_date = data["next_billing_date"]
            else:
                resp.failure(f"Create subscription failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def pause(self):
        self._transition("pause", {"reason": pause_reason()})

    @task
    def resume(self):
        self._transition("resume")

    @task
    def cancel(self):
        self._transition("cancel", cancellation_data())

    @task
    def reactivate(self):
        if self.state.current_status == "cancelled":
            self._transition("reactivate")

    @task
    def done(self):
        self.interrupt()


class OnDemandBillingJourney(SequentialTaskSet):
    """Create -> Bill at the next billing date -> Read billing history."""

    def on_start(self):
        self.state = SubscriptionState(merchant_id=merchant_id())

    @task
    def create_subscription(self):
        with self.client.post(
            "/subscriptions",
            json=subscription_data(),
            headers=_headers(self.state),
            catch_response=True,
            name="POST /subscriptions",
        ) as resp:
            if resp.status_code == 201:
                self.state.subscription_id = resp.json()["id"]
                self.state.next_billing_date = resp.json()["next_billing_date"]
            else:
                resp.failure(f"Create subscription failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def bill(self):
        with self.client.post(
            f"/subscriptions/{self.state.subscription_id}/billing",
            json={"as_of": self.state.next_billing_date},
            headers=_headers(self.state),
            catch_response=True,
            name="POST /subscriptions/{id}/billing",
        ) as resp:
            # A declined (402) or uncreatable (502) charge is a valid sandbox outcome
            if resp.status_code in (200, 402, 502):
                resp.success()
            else:
                resp.failure(f"Billing failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def billing_history(self):
        self.client.get(
            f"/subscriptions/{self.state.subscription_id}/billing-history",
            headers=_headers(self.state),
            name="GET /subscriptions/{id}/billing-history",
        )

    @task
    def done(self):
        self.interrupt()


class SandboxUser(HttpUser):
    """Locust user simulating merchant traffic against the sandbox.

    Weighted distribution:
    - 35% Full refund
    - 25% Split refunds with over-limit guard
    - 20% Subscription lifecycle
    - 20% On-demand billing
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        FullRefundJourney: 7,
        SplitRefundJourney: 5,
        SubscriptionLifecycleJourney: 4,
        OnDemandBillingJourney: 4,
    }


class BillingSchedulerUser(HttpUser):
    """A scheduler that triggers billing runs while merchants keep working.

    Overlapping runs must never bill a subscription twice for one cycle.
    """

    wait_time = between(5.0, 10.0)

    @task
    def run_billing(self):
        with self.client.post(
            "/subscriptions/billing/run",
            json={},
            catch_response=True,
            name="POST /subscriptions/billing/run",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Billing run failed: {resp.status_code}: {extract_error_detail(resp)}")
