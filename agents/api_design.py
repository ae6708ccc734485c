"""API design agent: REST contracts, routes and payload schemas."""

from agents.base import BaseAgent
from core.context import ContextKey

RESPONSIBILITIES = """\
- Design clean, RESTful API contracts tailored to this service's domain
- Define route structures and OpenAPI-style documentation
- Specify request/response schemas with proper validation rules
- Handle domain-specific edge cases and error scenarios
- Follow REST best practices and correct HTTP semantics"""

OUTPUT_FORMAT = """\
When generating code, always include:

- Route definitions using Go's net/http or chi router
- Request/Response structs with JSON tags and validation
- Proper HTTP status codes and error response formats
- Comments explaining design decisions

Format code blocks as:
```go
// file: <filename>
<code>
```"""


class APIDesignAgent(BaseAgent):
    name = "API Design Agent"
    description = "Designs RESTful API contracts, route definitions, and request/response schemas"
    family = "api"
    context_key = ContextKey.API_DESIGN
    reads = ((ContextKey.PROJECT_CONTEXT, "Additional Context"),)
    task_template = "api_design.txt"
    responsibilities = RESPONSIBILITIES
    output_format = OUTPUT_FORMAT
