"""Testing & security agent: unit/integration tests and security middleware."""

from agents.base import BaseAgent
from core.context import ContextKey

RESPONSIBILITIES = """\
- Write comprehensive unit tests using Go's testing package and testify
- Design table-driven tests covering edge cases for all domain operations
- Write integration tests using testcontainers-go for real dependencies
- Implement JWT authentication middleware with role-based access control
- Add rate limiting, request ID generation, and audit logging middleware
- Identify and test security vulnerabilities specific to this service's domain"""

OUTPUT_FORMAT = """\
When generating code, always include:

- Table-driven unit tests with mock repositories (using interfaces)
- Integration tests with testcontainers (PostgreSQL, Kafka as needed)
- Concurrency tests for any operations that modify shared state
- JWT middleware (RS256), RBAC roles appropriate to this service
- Rate limiter middleware (token bucket per IP/API key)
- Audit logging middleware for all mutating operations
- A Makefile with test targets and coverage reporting

Format code blocks as:
```go
// file: <filename>
<code>
```"""


class TestingSecurityAgent(BaseAgent):
    # Not a test class, despite the name
    __test__ = False

    name = "Testing & Security Agent"
    description = "Writes unit/integration tests and implements JWT auth, RBAC, rate limiting, and security middleware"
    family = "test"
    context_key = ContextKey.TESTING_SECURITY
    reads = (
        (ContextKey.API_DESIGN, "API Design (write tests and middleware for these endpoints)"),
        (ContextKey.BACKEND_DB, "Service/Repo Layer (mock these interfaces in tests)"),
    )
    task_template = "testing_security.txt"
    responsibilities = RESPONSIBILITIES
    output_format = OUTPUT_FORMAT
