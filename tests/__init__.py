"""Test suite for the session and cache core.

Test structure:
- unit/: Unit tests - models, keys, metrics, tokens, degradation paths
- integration/: Integration tests - adapters and services on fakeredis
"""
