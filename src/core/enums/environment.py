"""Application environment types.

Used by Settings and the composition root to pick environment-specific
behavior (log rendering, secret strictness).

Environments:
- DEVELOPMENT: Local development, human-readable console logs
- TESTING: Automated test execution (fakeredis, JSON logs)
- CI: Continuous integration environment
- PRODUCTION: Production deployment
"""

from enum import Enum


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    CI = "ci"
    PRODUCTION = "production"
