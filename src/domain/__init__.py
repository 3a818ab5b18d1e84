"""Domain layer - ports consumed by the session and cache core.

The domain layer has NO dependencies on any framework or infrastructure.

Structure:
- protocols/: Protocol definitions (key-value store, logger, session tokens)
"""
