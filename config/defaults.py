"""Default pipeline settings."""

DEFAULTS = {
    "model": "claude-opus-4-5",
    "max_tokens": 8192,
    "context_char_cap": 3000,   # per-stage output exposed to later stages
    "output_dir": "./generated",
    "max_attempts": 2,          # generation attempts per stage, including the first
    "retry_delay": 2.0,
    "request_timeout": 600,     # seconds to connect and receive response headers
    "stage_log": "output.md",
    "summary_file": "README.md",
}
