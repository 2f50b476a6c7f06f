"""Provider configuration variants (tagged by backend)."""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from tidb_vector.utils.errors import ConfigurationError


class ProviderBackend(str, Enum):
    """Provider backend selection."""

    OPENAI = "openai"
    AZURE = "azure"


class OpenAIProviderConfig(BaseModel):
    """OpenAI (direct) API configuration."""

    model_config = ConfigDict(frozen=True)

    backend: Literal[ProviderBackend.OPENAI] = ProviderBackend.OPENAI
    api_key: str = Field(default="", description="OpenAI API key")
    model: str = Field(default="", description="Model name (embedding or chat)")
    base_url: Optional[str] = Field(default=None, description="Optional OpenAI-compatible base URL")
    dimension: Optional[int] = Field(default=None, description="Embedding dimension (embeddings only)")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")

    @property
    def model_name(self) -> str:
        return self.model

    def validate_for(self, purpose: str) -> None:
        """
        Validate required settings for a provider purpose.

        Args:
            purpose: "embedding" or "chat"

        Raises:
            ConfigurationError: If a required setting is missing or invalid
        """
        if not self.api_key.strip():
            raise ConfigurationError("OpenAI: api_key is empty", setting="api_key")
        if not self.model.strip():
            raise ConfigurationError("OpenAI: model is empty", setting="model")
        if purpose == "embedding":
            if self.dimension is None:
                raise ConfigurationError(
                    "OpenAI: dimension must be specified for embedding generation",
                    setting="dimension",
                )
            if self.dimension < 1:
                raise ConfigurationError("OpenAI: dimension must be at least 1", setting="dimension")


class AzureOpenAIProviderConfig(BaseModel):
    """Azure OpenAI configuration (API-key authentication)."""

    model_config = ConfigDict(frozen=True)

    backend: Literal[ProviderBackend.AZURE] = ProviderBackend.AZURE
    api_key: str = Field(default="", description="Azure OpenAI API key")
    endpoint: str = Field(default="", description="Azure OpenAI endpoint (https://...)")
    deployment_name: str = Field(default="", description="Deployment name")
    api_version: str = Field(default="2024-06-01", description="Azure OpenAI API version")
    dimension: Optional[int] = Field(default=None, description="Embedding dimension (embeddings only)")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")

    @property
    def model_name(self) -> str:
        return self.deployment_name

    def validate_for(self, purpose: str) -> None:
        """
        Validate required settings for a provider purpose.

        Args:
            purpose: "embedding" or "chat"

        Raises:
            ConfigurationError: If a required setting is missing or invalid
        """
        if not self.api_key.strip():
            raise ConfigurationError("Azure OpenAI: api_key is empty", setting="api_key")
        if not self.endpoint.strip():
            raise ConfigurationError("Azure OpenAI: endpoint is empty", setting="endpoint")
        if not self.endpoint.lower().startswith("https://"):
            raise ConfigurationError(
                "Azure OpenAI: endpoint must start with https://", setting="endpoint"
            )
        if not self.deployment_name.strip():
            raise ConfigurationError(
                "Azure OpenAI: deployment_name is empty", setting="deployment_name"
            )
        if purpose == "embedding" and (self.dimension is None or self.dimension < 1):
            raise ConfigurationError(
                "Azure OpenAI: dimension must be at least 1", setting="dimension"
            )


ProviderConfig = Annotated[
    Union[OpenAIProviderConfig, AzureOpenAIProviderConfig],
    Field(discriminator="backend"),
]
