"""Application configuration and settings.

Objective:
    Describe one merge run: how to authenticate to Graph, which locale pair
    to reconcile, and how hard to push on the mailbox while doing it.

Responsibilities:
    - Read :class:`Settings` from the environment and `.env`.
    - Hold the merge tunables (item batch size, listing cap, numeric-suffix
      scanning) consumed by the merge engine and resolution sweep.

High-level call tree:
    - :func:`get_settings` -> returns :class:`Settings`
    - :class:`Settings`
        - :attr:`Settings.uses_certificate`

Operational notes:
    - Components receive the ``Settings`` instance from the orchestrator;
      only the CLI and a settings-less orchestrator call :func:`get_settings`.
    - CLI flags override individual fields after loading.
"""

from pathlib import Path
from typing import Optional
import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Graph well-known name of the mailbox's top-of-information-store folder
ROOT_FOLDER_NAME = "msgfolderroot"

DEFAULT_TOKEN_CACHE_FILE = Path.home() / ".outlook_locale_merge_token_cache.json"


class Settings(BaseSettings):
    """
    Run settings; every field maps to an upper-case environment variable.

    Attributes:
        azure_client_id: Azure AD application client ID.
        azure_client_secret: Azure AD application client secret.
        azure_certificate_path: PEM private key used for certificate auth.
        azure_certificate_thumbprint: Thumbprint of the uploaded certificate.
        azure_tenant_id: Azure AD tenant ID.
        target_locale: Locale whose folder names are canonical after the run.
        source_locale: Locale the drifted folders were named in.
        scan_numericals: Also look for numerically suffixed source folders.
        item_batch_size: Items moved per remote call.
        log_level: Logging level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Azure AD Configuration
    azure_client_id: str = Field(..., description="Azure AD application client ID")
    azure_client_secret: Optional[str] = Field(
        default=None, description="Azure AD application client secret (for client credentials flow)"
    )
    azure_certificate_path: Optional[Path] = Field(
        default=None,
        description="Path to a PEM private key for certificate-based client credentials",
    )
    azure_certificate_thumbprint: Optional[str] = Field(
        default=None, description="SHA-1 thumbprint of the certificate registered on the app"
    )
    azure_tenant_id: str = Field(
        default="organizations", description="Azure AD tenant ID"
    )

    use_client_credentials: bool = Field(
        default=False,
        description=(
            "Use client credentials flow instead of device code flow. "
            "Required to process mailboxes other than the signed-in user's."
        ),
    )

    token_cache_path: Path = Field(
        default=DEFAULT_TOKEN_CACHE_FILE,
        description="MSAL token cache file used by the device code flow",
    )

    # Locale Settings
    target_locale: str = Field(
        default="en-US", description="Locale whose folder names should remain"
    )
    source_locale: Optional[str] = Field(
        default=None,
        description=(
            "Locale of the folders to merge away. "
            "If omitted, the mailbox's currently configured locale is used."
        ),
    )
    locale_table_path: Optional[Path] = Field(
        default=None,
        description="Override for the bundled locale folder-name table (JSON)",
    )
    update_regional_configuration: bool = Field(
        default=False,
        description="Write the target locale and its date/time formats to the mailbox before merging",
    )

    # Merge Settings
    scan_numericals: bool = Field(
        default=False,
        description="Also look for source folders with numeric suffixes (e.g. 'Inbox1')",
    )
    numerical_max: int = Field(
        default=1, ge=1, description="Highest numeric suffix looked up when scanning"
    )
    item_batch_size: int = Field(
        default=1000, ge=1, description="Items listed and moved per batch"
    )
    max_folder_results: int = Field(
        default=99999, ge=1, description="Maximum child folders enumerated per folder"
    )
    dry_run: bool = Field(
        default=False, description="Log moves and deletes without performing them"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def uses_certificate(self) -> bool:
        """Whether certificate credentials are configured.

        Returns:
            bool: True when both the key path and thumbprint are set.
        """
        return bool(self.azure_certificate_path and self.azure_certificate_thumbprint)


def get_settings() -> Settings:
    """
    Load settings from the environment and `.env`.

    Returns:
        Settings: Loaded settings.

    Raises:
        ValidationError: If AZURE_CLIENT_ID is missing or a value is invalid.
    """
    return Settings()
