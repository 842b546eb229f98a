"""Policy resolution for attention engine parameters."""

from attention.policy.resolver import AttentionPolicy, default_policy

__all__ = [
    "AttentionPolicy",
    "default_policy",
]
