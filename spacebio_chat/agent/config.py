"""Chat configuration with environment variable loading.

Pydantic-based configuration for the retrieval service (LlamaCloud) and the
completion provider (Azure OpenAI). Credentials default to empty strings so
the app can boot without them; the streaming endpoint checks them per request.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from spacebio_chat.errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()


def _optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None


class ChatConfig(BaseModel):
    """Configuration for the chat pipeline.

    Attributes:
        llama_api_key: LlamaCloud API key.
        llama_index_name: Name of the LlamaCloud index to search.
        llama_project_name: LlamaCloud project holding the index.
        llama_project_id: Optional project id, sent when set.
        llama_organization_id: Optional organization id, sent when set.
        llama_base_url: LlamaCloud API base URL.
        similarity_top_k: Number of passages to retrieve per query.
        azure_api_key: Azure OpenAI API key.
        azure_endpoint: Azure OpenAI resource endpoint.
        azure_deployment: Chat model deployment name.
        azure_api_version: Azure OpenAI REST API version.
        temperature: Sampling temperature for the completion.
        request_timeout: Overall deadline for one exchange, in seconds.
        retrieval_timeout: Budget for the retrieval call, in seconds.
        max_history_messages: Keep only the most recent N turns in the prompt.
            None sends the full conversation.
    """

    llama_api_key: str = Field(default_factory=lambda: os.getenv("LLAMA_CLOUD_API_KEY", ""))
    llama_index_name: str = Field(default_factory=lambda: os.getenv("LLAMA_INDEX_NAME", ""))
    llama_project_name: str = Field(
        default_factory=lambda: os.getenv("LLAMA_PROJECT_NAME", "")
    )
    llama_project_id: str | None = Field(
        default_factory=lambda: os.getenv("LLAMA_PROJECT_ID") or None
    )
    llama_organization_id: str | None = Field(
        default_factory=lambda: os.getenv("LLAMA_ORGANIZATION_ID") or None
    )
    llama_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "LLAMA_CLOUD_BASE_URL", "https://api.cloud.llamaindex.ai"
        )
    )
    similarity_top_k: int = Field(
        default_factory=lambda: int(os.getenv("LLAMA_SIMILARITY_TOP_K", "5")),
        ge=1,
        description="Number of passages to retrieve per query",
    )
    azure_api_key: str = Field(default_factory=lambda: os.getenv("AZURE_OPENAI_API_KEY", ""))
    azure_endpoint: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_ENDPOINT", "")
    )
    azure_deployment: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME", "")
    )
    azure_api_version: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_API_VERSION", "2024-10-21")
    )
    temperature: float = Field(
        default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "1.0")),
        ge=0.0,
        le=2.0,
        description="Sampling temperature for response generation",
    )
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60")),
        gt=0.0,
        description="Overall deadline for one chat exchange, in seconds",
    )
    retrieval_timeout: float = Field(
        default_factory=lambda: float(os.getenv("RETRIEVAL_TIMEOUT_SECONDS", "10")),
        gt=0.0,
        description="Budget for the retrieval call, capped by the exchange deadline",
    )
    max_history_messages: int | None = Field(
        default_factory=lambda: _optional_int("MAX_HISTORY_MESSAGES"),
        ge=1,
        description="History window for the prompt (None = unbounded)",
    )

    @field_validator(
        "llama_api_key",
        "llama_index_name",
        "llama_project_name",
        "azure_api_key",
        "azure_endpoint",
        "azure_deployment",
    )
    @classmethod
    def strip_credential(cls, v: str) -> str:
        """Strip surrounding whitespace so blank values count as missing."""
        return v.strip()

    def missing_credentials(self) -> list[str]:
        """Return the environment names of required settings that are unset."""
        required = {
            "LLAMA_CLOUD_API_KEY": self.llama_api_key,
            "LLAMA_INDEX_NAME": self.llama_index_name,
            "LLAMA_PROJECT_NAME": self.llama_project_name,
            "AZURE_OPENAI_API_KEY": self.azure_api_key,
            "AZURE_OPENAI_ENDPOINT": self.azure_endpoint,
            "AZURE_OPENAI_DEPLOYMENT_NAME": self.azure_deployment,
        }
        return [name for name, value in required.items() if not value]

    def require_credentials(self) -> None:
        """Fail fast when any required credential is missing.

        Raises:
            ConfigurationError: If one or more credentials are unset.
        """
        if missing := self.missing_credentials():
            raise ConfigurationError(
                f"API credentials not configured (missing: {', '.join(missing)})"
            )


# Module-level singleton instance
_chat_config: ChatConfig | None = None


def get_chat_config() -> ChatConfig:
    """Get or create chat configuration from environment.

    Returns:
        The shared ChatConfig instance.
    """
    global _chat_config
    if _chat_config is None:
        _chat_config = ChatConfig()
    return _chat_config
