"""Test package for the Space Biology chat.

Unit tests for isolated logic and integration tests for the HTTP
workflows.

Structure:
    - unit/: Individual function and class tests
    - integration/: Endpoint and streaming workflow tests
    - stubs.py: Stand-ins for the retrieval and completion services

Leverages pytest with pytest-check for soft assertions.
"""
