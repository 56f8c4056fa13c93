"""
Test Suite

Contains unit tests for the rate view engine.

Structure:
- tests/unit/: Tests for individual components (schemas, buffer, feeds, controller, host shell)

Uses pytest with pytest-asyncio for testing async functionality.
Network access is never required: HTTP and SSE transports are mocked.
"""
