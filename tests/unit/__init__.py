"""Unit tests for individual components in isolation.

Ensures fast execution with minimal dependencies.

Coverage:
    - storage/: Message ordering and clearing
    - streaming/: SSE frame encoding and incremental decoding
    - agent/: Configuration, retrieval, prompt building and orchestration
    - ui/: Chat session controller against the in-process API

Uses stubs for LlamaCloud and Azure OpenAI. Follows single responsibility
per test function. Leverages pytest-check for multiple assertions per test.
"""
