"""Deny-list enforcement for now-playing events."""

from audiowarden.enforcement.engine import EnforcementEngine, EnforcementVerdict

__all__ = ["EnforcementEngine", "EnforcementVerdict"]
