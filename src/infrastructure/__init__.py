"""Infrastructure layer - Adapters for the session and cache core.

Structure:
- cache/: Redis adapter, cache keys, metrics, tagged/versioned cache manager
- security/: Session token signing (PyJWT)
- logging/: Structured logging adapters (structlog)
- jobs/: Periodic background tasks (session sweep, cache warming)

The infrastructure layer depends on the domain layer (implements protocols)
but the domain layer does NOT depend on infrastructure.
"""
