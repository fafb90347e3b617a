"""Integration tests for components working together as a system.

Coverage:
    - Message endpoints over real HTTP requests (ASGI transport)
    - SSE framing from the orchestrator through StreamingResponse
    - Retrieval client parsing a LlamaCloud-shaped response
    - Live exchanges against LlamaCloud and Azure OpenAI (when configured)

Upstream services are stubbed unless credentials are set in the
environment, in which case the live tests run as well.
"""
