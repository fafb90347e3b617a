"""LlamaCloud retrieval client.

Fetches passages relevant to the latest user question. Retrieval only
improves answer quality, so every failure degrades to an empty context
instead of aborting the conversation.
"""

import logging
from typing import Any

import httpx

from spacebio_chat.agent.config import ChatConfig
from spacebio_chat.errors import RetrievalError

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/v1/pipelines/search"
PASSAGE_SEPARATOR = "\n\n"


def _extract_passages(payload: Any) -> list[str]:
    """Pull passage text out of a pipeline search response.

    Nodes with no text are dropped rather than joined as empty passages,
    so the context never contains runs of blank separators.

    Args:
        payload: Decoded JSON body.

    Returns:
        Non-empty passage texts in service order.

    Raises:
        RetrievalError: If the body does not have the expected shape.
    """
    if not isinstance(payload, dict):
        raise RetrievalError("Retrieval response is not a JSON object")

    nodes = payload.get("retrieval_nodes")
    if nodes is None:
        return []
    if not isinstance(nodes, list):
        raise RetrievalError("retrieval_nodes is not a list")

    passages: list[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        text = node.get("text")
        if not text and isinstance(node.get("node"), dict):
            text = node["node"].get("text")
        if text:
            passages.append(str(text))
    return passages


class ContextRetriever:
    """Client for the LlamaCloud pipeline search endpoint.

    Args:
        config: Chat configuration with LlamaCloud credentials.
        client: Optional shared httpx client. Created per call when omitted.
    """

    def __init__(self, config: ChatConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    def _build_request_body(self, query: str, top_k: int) -> dict[str, Any]:
        body: dict[str, Any] = {
            "index_name": self._config.llama_index_name,
            "project_name": self._config.llama_project_name,
            "query": query,
            "similarity_top_k": top_k,
        }
        if self._config.llama_project_id:
            body["project_id"] = self._config.llama_project_id
        if self._config.llama_organization_id:
            body["organization_id"] = self._config.llama_organization_id
        return body

    async def _search(self, query: str, top_k: int, timeout: float) -> list[str]:
        if not self._config.llama_api_key or not self._config.llama_index_name:
            raise RetrievalError("LlamaCloud credentials not configured")

        url = self._config.llama_base_url.rstrip("/") + SEARCH_PATH
        body = self._build_request_body(query, top_k)

        try:
            headers = {"Authorization": f"Bearer {self._config.llama_api_key}"}
            if self._client is not None:
                response = await self._client.post(
                    url, json=body, headers=headers, timeout=timeout
                )
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RetrievalError(f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise RetrievalError(f"Connection failed: {e}") from e
        except Exception as e:
            # Bad base URL or unencodable key surface here, not as RequestError
            raise RetrievalError(f"Request could not be sent: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise RetrievalError(f"Malformed response body: {e}") from e

        return _extract_passages(payload)

    async def retrieve(
        self,
        query: str,
        top_k: int | None = None,
        timeout: float | None = None,
    ) -> str:
        """Retrieve context text for a query.

        Args:
            query: The user's question.
            top_k: Passages to request. Defaults to the configured value.
            timeout: Seconds allowed for the call. Defaults to the
                configured retrieval budget.

        Returns:
            Passages joined by blank lines, or "" when retrieval fails
            or finds nothing.
        """
        top_k = top_k or self._config.similarity_top_k
        timeout = timeout if timeout is not None else self._config.retrieval_timeout

        try:
            passages = await self._search(query, top_k, timeout)
        except RetrievalError as e:
            logger.warning(f"Context retrieval failed, continuing without context: {e}")
            return ""

        logger.info(f"Retrieved {len(passages)} passages for query")
        return PASSAGE_SEPARATOR.join(passages)
