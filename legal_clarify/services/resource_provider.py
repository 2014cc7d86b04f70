from __future__ import annotations
from typing import TYPE_CHECKING, Optional

from legal_clarify.config.settings import Settings, settings as default_settings
from legal_clarify.llm_integration.exceptions import NotConfiguredError

if TYPE_CHECKING:
    from legal_clarify.llm_integration.gemini_client import GeminiClient

class ResourceProvider:
    """
    A container for the process-wide resources: the settings and the Gemini
    client built from them. The client is created on first use so that a
    missing API key is reported per request instead of at startup.
    """
    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._gemini_client: GeminiClient | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def set_gemini_client(self, client: GeminiClient) -> None:
        """Installs a ready-made client (used by tests and custom deployments)."""
        self._gemini_client = client

    def ensure_configured(self) -> None:
        """Raises NotConfiguredError before any prompt is built or network call is made."""
        if self._gemini_client is None and not self._settings.is_configured:
            raise NotConfiguredError()

    def get_gemini_client(self) -> GeminiClient:
        """Returns the runtime Gemini client, creating it on first use."""
        self.ensure_configured()
        if self._gemini_client is None:
            from legal_clarify.llm_integration.gemini_client import GeminiClient
            self._gemini_client = GeminiClient(self._settings)
        return self._gemini_client
