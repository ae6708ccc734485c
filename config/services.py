"""Ready-made service descriptors and descriptor loading."""

import json

from core.state import ServiceDescriptor

INVENTORY = ServiceDescriptor(
    name="inventory",
    description=(
        "Tracks product stock levels across multiple warehouses for an e-commerce "
        "platform. Handles reservations, replenishment, and low-stock alerting."
    ),
    language="Go",
    entities=("Product", "StockItem", "Warehouse", "StockMovement", "Reservation"),
    operations=(
        "Reserve stock for an order",
        "Release reserved stock on cancellation",
        "Decrement stock on fulfillment",
        "Replenish stock",
        "Aggregate stock across warehouses",
        "Trigger low-stock alerts",
    ),
    integrations=(
        "Order Service (Kafka events)",
        "PostgreSQL (primary store)",
        "Redis (stock level cache)",
    ),
    extra_requirements=(
        "Prevent negative stock using atomic updates",
        "Full audit trail of all stock movements",
        "Support product variants (size, color)",
    ),
)

PAYMENTS = ServiceDescriptor(
    name="payments",
    description="Handles payment processing, refunds, and transaction history for an e-commerce platform.",
    language="Go",
    entities=("Payment", "Refund", "Transaction", "PaymentMethod"),
    operations=(
        "Initiate a payment",
        "Confirm payment",
        "Issue a full or partial refund",
        "Retrieve transaction history",
        "Handle webhook callbacks from payment gateway",
    ),
    integrations=(
        "Stripe API (payment gateway)",
        "Order Service (Kafka events)",
        "PostgreSQL (transaction store)",
    ),
    extra_requirements=(
        "Idempotency keys on all payment requests",
        "PCI-DSS compliant, never store raw card data",
        "Retry logic for transient gateway failures",
    ),
)

NOTIFICATIONS = ServiceDescriptor(
    name="notifications",
    description="Sends email, SMS, and push notifications triggered by events across the platform.",
    language="Go",
    entities=("Notification", "Template", "Recipient", "DeliveryLog"),
    operations=(
        "Send email notification",
        "Send SMS notification",
        "Send push notification",
        "Render template with dynamic data",
        "Track delivery status",
        "Manage user notification preferences",
    ),
    integrations=(
        "SendGrid (email)",
        "Twilio (SMS)",
        "Firebase Cloud Messaging (push)",
        "Kafka (consume events from other services)",
        "PostgreSQL (delivery logs, preferences)",
    ),
    extra_requirements=(
        "Respect user opt-out preferences",
        "Retry failed deliveries with backoff",
        "Deduplicate notifications using idempotency keys",
    ),
)

SERVICES = {s.name: s for s in (INVENTORY, PAYMENTS, NOTIFICATIONS)}
DEFAULT_SERVICE = "inventory"


def get_service(name):
    """Return a preset descriptor by name."""
    try:
        return SERVICES[name]
    except KeyError:
        known = ", ".join(sorted(SERVICES))
        raise KeyError(f"Unknown service {name!r} (known: {known})") from None


def load_descriptor(path):
    """Read a ServiceDescriptor from a JSON file."""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return ServiceDescriptor.from_dict(data)
