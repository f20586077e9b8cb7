"""
Monitoring Module.

Tracks context pressure reported by provider responses.

Usage:
    from monitoring import compute_context_pressure, resolve_prompt_token_count

    tokens = resolve_prompt_token_count(response_usage)
    pressure = compute_context_pressure(tokens, max_context_tokens=128000)
"""

from .context_pressure import (
    ContextPressure,
    compute_context_pressure,
    resolve_prompt_token_count,
)

__all__ = [
    "ContextPressure",
    "compute_context_pressure",
    "resolve_prompt_token_count",
]
