"""
Test Suite

Contains unit tests for the funding board backend.

Structure:
- tests/conftest.py: In-memory Binance client and shared fixtures
- tests/unit/: Tests for individual components (client, ranking, enrichment, formatting, API)

Uses pytest with pytest-asyncio for testing async functionality.
"""
