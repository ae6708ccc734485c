"""Backend & database agent: service layer, schema, repositories, migrations."""

from agents.base import BaseAgent
from core.context import ContextKey

RESPONSIBILITIES = """\
- Implement service layer business logic for all domain operations
- Design the database schema with proper indexing and constraints
- Write repository pattern code for data access using pgx or sqlx
- Handle concurrency: locking strategies, atomic updates, race conditions
- Implement database migrations (up/down)
- Apply domain-appropriate patterns (e.g. Saga, outbox, event sourcing)"""

OUTPUT_FORMAT = """\
When generating code, always include:

- PostgreSQL schema (tables, indexes, constraints, foreign keys)
- Repository interfaces and concrete implementations
- Service structs with dependency injection
- Concurrency-safe operations where relevant
- Up/down migration SQL files

Format Go code blocks as:
```go
// file: <filename>
<code>
```

Format SQL blocks as:
```sql
-- file: <filename>
<sql>
```"""


class BackendDBAgent(BaseAgent):
    name = "Backend & Database Agent"
    description = "Implements business logic, service layer, and database schema/repositories"
    family = "service"
    context_key = ContextKey.BACKEND_DB
    reads = ((ContextKey.API_DESIGN, "API Design (implement these contracts)"),)
    task_template = "backend_db.txt"
    responsibilities = RESPONSIBILITIES
    output_format = OUTPUT_FORMAT
