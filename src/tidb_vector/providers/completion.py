"""Text completion via LiteLLM (OpenAI direct or Azure OpenAI routing)."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from litellm import acompletion

from tidb_vector.providers.config import ProviderBackend, ProviderConfig
from tidb_vector.utils.errors import CompletionError
from tidb_vector.utils.logging import get_logger

logger = get_logger("providers.completion")

_PASSTHROUGH_ROLES = ("user", "assistant")


class LiteLLMTextGenerator:
    """Completion provider backed by ``litellm.acompletion``.

    Credentials are passed per call instead of through process environment
    variables, so several generators with different keys can coexist.
    """

    def __init__(self, config: ProviderConfig, temperature: Optional[float] = None) -> None:
        config.validate_for("chat")
        self._config = config
        self._temperature = temperature
        self._model = self._litellm_model_name()

    @property
    def model(self) -> str:
        return self._model

    def _litellm_model_name(self) -> str:
        """Model name in LiteLLM format (e.g. "azure/my-deployment")."""
        if self._config.backend == ProviderBackend.AZURE:
            return f"azure/{self._config.deployment_name}"
        return f"openai/{self._config.model}"

    def _connection_params(self) -> Dict[str, Any]:
        cfg = self._config
        params: Dict[str, Any] = {"api_key": cfg.api_key, "timeout": cfg.timeout}
        if cfg.backend == ProviderBackend.AZURE:
            params["api_base"] = cfg.endpoint
            params["api_version"] = cfg.api_version
        elif cfg.base_url:
            params["api_base"] = cfg.base_url
        return params

    @staticmethod
    def build_messages(system: str, messages: Sequence[Tuple[str, str]]) -> List[Dict[str, str]]:
        """Convert (role, content) turns to chat messages; unknown roles are sent as user turns."""
        out: List[Dict[str, str]] = []
        if system and system.strip():
            out.append({"role": "system", "content": system})
        for role, content in messages:
            out.append({"role": role if role in _PASSTHROUGH_ROLES else "user", "content": content})
        return out

    async def complete(self, system: str, messages: Sequence[Tuple[str, str]]) -> str:
        """
        Complete a conversation.

        Args:
            system: System instruction (omitted when blank)
            messages: Ordered (role, content) turns

        Returns:
            The first choice's text

        Raises:
            CompletionError: If the call fails or returns no content
        """
        params: Dict[str, Any] = {
            "model": self._model,
            "messages": self.build_messages(system, messages),
            "stream": False,
            **self._connection_params(),
        }
        if self._temperature is not None:
            params["temperature"] = self._temperature

        try:
            logger.debug(f"Calling completion model: {self._model}, turns={len(messages)}")
            response = await acompletion(**params)
        except Exception as e:
            raise CompletionError(f"Completion call failed: {e}", model=self._model) from e

        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise CompletionError(
                "Completion response had no content", model=self._model
            ) from e
        return content or ""
