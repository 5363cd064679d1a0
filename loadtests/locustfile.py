"""Payment Sandbox load tests, Locust entry point.

SandboxUser drives merchant traffic (refund ledger and subscription
journeys); BillingSchedulerUser fires overlapping billing runs alongside it.

Usage:
    # Both user classes (web UI):
    locust -f loadtests/locustfile.py

    # Merchant traffic only:
    locust -f loadtests/locustfile.py SandboxUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py SandboxUser BillingSchedulerUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

from loadtests.helpers.response import error_code, extract_error_detail
from loadtests.scenarios.sandbox import BillingSchedulerUser, SandboxUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log the sandbox error body of every failed request.

    Guarded outcomes (AMOUNT_EXCEEDED, NOT_DUE, declined billing) are logged
    at INFO since the journeys expect them; anything else is an ERROR.
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
        return
    if response is None or response.status_code < 400:
        return
    detail = extract_error_detail(response)
    if error_code(response) in {"AMOUNT_EXCEEDED", "NOT_DUE", "BILLING_FAILED", "CREATION_ERROR"}:
        logger.info("[%s] %s %s: %s", response.status_code, request_type, name, detail)
    else:
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')} against {environment.host}\n")


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Confirm the API is still healthy when the test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    try:
        resp = requests.get(f"{environment.host}/health", timeout=5)
        print(f"[LOADTEST] Health after run: {resp.status_code} {resp.text}\n")
    except requests.RequestException as e:
        print(f"[LOADTEST] Could not reach health endpoint: {e}\n")
