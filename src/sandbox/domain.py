"""Payment Sandbox bounded context: simulated charges, refunds and subscriptions.

Handles the refund ledger (validation and settlement against a transaction's
remaining balance), the subscription lifecycle (trials, billing cycles,
pause/resume, cancel/reactivate) and the batch billing runner. Gateways,
webhook notification and merchant/customer lookup are pluggable adapters.
"""

import structlog
from protean.domain import Domain

sandbox = Domain(name="sandbox")

logger = structlog.get_logger(__name__)
