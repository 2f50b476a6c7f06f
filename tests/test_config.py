"""Tests for configuration management."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from tidb_vector.config import (
    ChatSettings,
    ChunkingSettings,
    DatabaseSettings,
    DistanceFunction,
    EmbeddingSettings,
    Environment,
    Settings,
    VectorStoreConfig,
)
from tidb_vector.providers.config import AzureOpenAIProviderConfig, OpenAIProviderConfig, ProviderBackend
from tidb_vector.utils.errors import ConfigurationError

_ENV_VARS = [
    "TIDB_CONNECTION_STRING",
    "TIDB_DEFAULT_COLLECTION",
    "TIDB_TABLE_NAME",
    "TIDB_DISTANCE_FUNCTION",
    "TIDB_SSL_CA",
    "EMBEDDING_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY",
    "EMBEDDING_DEPLOYMENT_NAME",
    "EMBEDDING_DIMENSION",
    "CHAT_PROVIDER",
    "CHAT_DEPLOYMENT_NAME",
    "TOKENIZER_ENCODING",
    "MAX_TOKENS_PER_CHUNK",
    "OVERLAP_TOKENS",
    "ENVIRONMENT",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of these tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_settings(**kwargs):
    return Settings(_env_file=None, **kwargs)


class TestVectorStoreConfig:
    def test_defaults(self):
        config = VectorStoreConfig(connection_string="mysql://root@localhost:4000/test")
        assert config.default_collection == "default"
        assert config.table_name == "tidb_vectors"
        assert config.distance_function == DistanceFunction.COSINE
        assert config.embedding_dimension is None
        assert config.ensure_schema is False
        assert config.create_vector_index is False

    def test_is_immutable(self):
        config = VectorStoreConfig(connection_string="mysql://root@localhost:4000/test")
        with pytest.raises(PydanticValidationError):
            config.table_name = "other"

    def test_blank_collection_falls_back(self):
        config = VectorStoreConfig(connection_string="mysql://x/db", default_collection="   ")
        assert config.default_collection == "default"

    @pytest.mark.parametrize("name", ["my_vectors", "_t", "Docs2025"])
    def test_valid_table_names(self, name):
        assert VectorStoreConfig(connection_string="mysql://x/db", table_name=name).table_name == name

    @pytest.mark.parametrize("name", ["1table", "docs; DROP TABLE x", "my-table", "a" * 65, ""])
    def test_invalid_table_names(self, name):
        with pytest.raises(PydanticValidationError):
            VectorStoreConfig(connection_string="mysql://x/db", table_name=name)

    def test_dimension_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            VectorStoreConfig(connection_string="mysql://x/db", embedding_dimension=0)

    def test_l2_distance(self):
        config = VectorStoreConfig(connection_string="mysql://x/db", distance_function="l2")
        assert config.distance_function == DistanceFunction.L2


def test_database_settings_from_env(monkeypatch):
    """Test database settings read the TIDB_ prefix."""
    monkeypatch.setenv("TIDB_CONNECTION_STRING", "mysql://u:p@gateway:4000/app")
    monkeypatch.setenv("TIDB_TABLE_NAME", "kb_vectors")
    settings = DatabaseSettings()
    assert settings.connection_string == "mysql://u:p@gateway:4000/app"
    assert settings.table_name == "kb_vectors"
    assert settings.is_configured is True


def test_embedding_settings_configured():
    """Test embedding provider detection."""
    assert EmbeddingSettings(openai_api_key="sk-test").is_configured is True
    assert EmbeddingSettings().is_configured is False
    azure = EmbeddingSettings(
        embedding_provider="azure",
        azure_openai_endpoint="https://x.openai.azure.com",
        azure_openai_api_key="k",
    )
    assert azure.is_configured is False
    assert azure.model_copy(update={"embedding_deployment_name": "emb"}).is_configured is True


def test_chunking_overlap_must_be_below_budget():
    """Test chunking defaults validation."""
    assert ChunkingSettings().max_tokens_per_chunk == 600
    with pytest.raises(PydanticValidationError):
        ChunkingSettings(max_tokens_per_chunk=100, overlap_tokens=100)


class TestSettings:
    def test_nested_defaults(self):
        settings = make_settings()
        assert settings.environment == Environment.DEVELOPMENT
        assert settings.log_level == "INFO"
        assert settings.database.is_configured is False
        assert settings.chunking.overlap_tokens == 80

    def test_unknown_environment_falls_back(self):
        assert make_settings(environment="qa").environment == Environment.DEVELOPMENT
        assert make_settings(environment="PRODUCTION").is_production is True

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            make_settings(log_level="verbose")

    def test_store_config_requires_connection_string(self):
        with pytest.raises(ConfigurationError) as exc_info:
            make_settings().to_store_config()
        assert exc_info.value.details["setting"] == "TIDB_CONNECTION_STRING"

    def test_to_store_config(self):
        settings = make_settings(
            database=DatabaseSettings(connection_string="mysql://root@localhost:4000/test", distance_function="l2"),
            embedding=EmbeddingSettings(embedding_dimension=1024),
        )
        config = settings.to_store_config()
        assert config.connection_string == "mysql://root@localhost:4000/test"
        assert config.distance_function == DistanceFunction.L2
        assert config.embedding_dimension == 1024

    def test_invalid_table_name_is_configuration_error(self):
        settings = make_settings(
            database=DatabaseSettings(connection_string="mysql://x/db", table_name="bad-name")
        )
        with pytest.raises(ConfigurationError):
            settings.to_store_config()

    def test_openai_provider_configs(self):
        settings = make_settings(embedding=EmbeddingSettings(openai_api_key="sk-test"))

        embedding = settings.to_embedding_provider_config()
        completion = settings.to_completion_provider_config()

        assert isinstance(embedding, OpenAIProviderConfig)
        assert embedding.model == "text-embedding-3-small"
        assert embedding.dimension == 1536
        assert completion.model == "gpt-4o-mini"
        assert completion.dimension is None
        assert settings.is_chat_configured is True

    def test_azure_provider_configs(self):
        settings = make_settings(
            embedding=EmbeddingSettings(
                embedding_provider=ProviderBackend.AZURE,
                azure_openai_endpoint="https://x.openai.azure.com",
                azure_openai_api_key="k",
                embedding_deployment_name="emb",
            ),
            chat=ChatSettings(chat_provider=ProviderBackend.AZURE, chat_deployment_name="chat"),
        )

        embedding = settings.to_embedding_provider_config()
        completion = settings.to_completion_provider_config()

        assert isinstance(embedding, AzureOpenAIProviderConfig)
        assert embedding.deployment_name == "emb"
        assert isinstance(completion, AzureOpenAIProviderConfig)
        assert completion.deployment_name == "chat"
        assert completion.endpoint == "https://x.openai.azure.com"
