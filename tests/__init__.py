"""
Test suite for the Call Relay system.

This package contains tests organized by type:
- Unit tests for individual components
- Integration tests against a running relay server
"""
