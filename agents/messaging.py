"""Messaging & events agent: domain events, Kafka producers and consumers."""

from agents.base import BaseAgent
from core.context import ContextKey

RESPONSIBILITIES = """\
- Design domain event schemas appropriate for this service
- Implement Kafka producers with the transactional outbox pattern
- Implement Kafka consumers with idempotency and dead letter queue handling
- Define which events this service publishes and which it consumes
- Ensure at-least-once delivery with retry and backoff logic
- Handle graceful shutdown of consumers"""

OUTPUT_FORMAT = """\
When generating code, always include:

- Domain event structs with versioning, event_id, correlation_id, and timestamp
- Kafka producer with transactional outbox (events written to DB before publishing)
- Kafka consumer group with idempotency tracking
- Dead letter queue handling
- Graceful shutdown

Format code blocks as:
```go
// file: <filename>
<code>
```"""


class MessagingAgent(BaseAgent):
    name = "Messaging & Events Agent"
    description = "Designs and implements Kafka-based domain events, producers, consumers, and async communication"
    family = "messaging"
    context_key = ContextKey.MESSAGING
    reads = (
        (ContextKey.BACKEND_DB,
         "Database/Service Context (outbox table should align with this schema)"),
    )
    task_template = "messaging.txt"
    responsibilities = RESPONSIBILITIES
    output_format = OUTPUT_FORMAT
