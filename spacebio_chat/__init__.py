"""Space Biology chat - streaming retrieval-augmented answers.

Combines FastAPI for HTTP streaming, LlamaCloud for passage retrieval,
Azure OpenAI for generation, NiceGUI for the chat page, and Pydantic for
data validation.

Components:
    - api: HTTP endpoints and SSE responses
    - agent: Retrieval, completion streaming and exchange orchestration
    - storage: Ordered message store
    - streaming: SSE frame encoding and incremental decoding
    - ui: Session controller and web interface
    - models: Request/response schemas
"""

__version__ = "0.1.0"
