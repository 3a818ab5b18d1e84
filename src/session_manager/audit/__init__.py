"""Session audit backends.

Exports:
    - SessionAuditBackend: Abstract audit interface
    - LoggerAuditBackend: stdlib logging implementation
    - NoOpAuditBackend: Does nothing (default)
"""

from .base import SessionAuditBackend
from .logger import LoggerAuditBackend
from .noop import NoOpAuditBackend

__all__ = ["LoggerAuditBackend", "NoOpAuditBackend", "SessionAuditBackend"]
