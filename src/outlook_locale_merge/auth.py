"""Microsoft Graph authentication.

Objective:
    Hand the Graph folder directory a bearer token for every request, for
    either of the two ways the merge tool is run:

    - Unattended, over a list of mailboxes: confidential client (client
      secret or certificate) with application permissions. Mailboxes are
      addressed as ``/users/{address}``; there is no signed-in user.
    - Interactively, for the operator's own mailbox: public client with the
      device-code flow and delegated permissions, cached on disk between
      runs.

High-level call tree:
    - :meth:`GraphAuthenticator.get_auth_headers`
        - :meth:`GraphAuthenticator.get_access_token`
            - :meth:`GraphAuthenticator._get_app`
                - :meth:`GraphAuthenticator._client_credential`
                - :meth:`GraphAuthenticator._load_token_cache`
            - :meth:`GraphAuthenticator._get_token_client_credentials`
            - :meth:`GraphAuthenticator._get_token_device_code`
                - :func:`_print_device_code_prompt`
            - :func:`_token_from_result`

Operational notes:
    - App-only runs need the ``Mail.ReadWrite`` and
      ``MailboxSettings.ReadWrite`` application permissions, granted by an
      administrator.
    - Every Graph request asks for headers; MSAL serves repeated requests
      from its in-memory cache, so this is cheap after the first call.
"""

import logging
from typing import Any, Optional, Union

import msal

from .config import Settings

logger = logging.getLogger(__name__)

ClientApplication = Union[msal.PublicClientApplication, msal.ConfidentialClientApplication]


def _token_from_result(result: Optional[dict[str, Any]], flow_name: str) -> str:
    """Extract the access token from an MSAL result.

    Raises:
        RuntimeError: If MSAL returned an error instead of a token.
    """
    if result and "access_token" in result:
        logger.debug(f"Acquired Graph token ({flow_name})")
        return result["access_token"]

    result = result or {}
    description = result.get("error_description", "no token returned")
    logger.error(f"Token acquisition failed ({flow_name}): {result.get('error', 'unknown')} - {description}")
    raise RuntimeError(f"Failed to acquire access token: {description}")


def _print_device_code_prompt(flow: dict[str, Any]) -> None:
    banner = "=" * 60
    print(f"\n{banner}\nSIGN IN TO THE MAILBOX TO MERGE\n{banner}")
    print(f"\n{flow['message']}\n")
    print(f"{banner}\n")


class GraphAuthenticator:
    """
    Supplies Microsoft Graph credentials through MSAL.

    Attributes:
        settings: Application settings with the app registration details.
        _app: Lazily created MSAL client application.
    """

    # Delegated scopes; the operator's own mailbox only
    GRAPH_SCOPES = [
        "https://graph.microsoft.com/Mail.ReadWrite",
        "https://graph.microsoft.com/MailboxSettings.ReadWrite",
    ]

    # App-only runs take whatever application permissions were consented
    GRAPH_APP_SCOPES = [
        "https://graph.microsoft.com/.default",
    ]

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._app: Optional[ClientApplication] = None
        self._use_client_credentials = bool(settings.use_client_credentials)

    @property
    def supports_signed_in_user(self) -> bool:
        """Whether ``/me`` can be addressed (delegated flow only)."""
        return not self._use_client_credentials

    def _load_token_cache(self) -> msal.SerializableTokenCache:
        """
        Read the device-code token cache.

        An unreadable or corrupt cache file is ignored, which costs one extra
        sign-in.

        Returns:
            msal.SerializableTokenCache: Cache, possibly empty.
        """
        cache = msal.SerializableTokenCache()
        cache_file = self.settings.token_cache_path

        if not cache_file.exists():
            logger.debug(f"No token cache at {cache_file}")
            return cache
        try:
            cache.deserialize(cache_file.read_text())
            logger.debug(f"Token cache loaded from {cache_file}")
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable token cache {cache_file}: {e}")
        return cache

    def _save_token_cache(self, cache: msal.SerializableTokenCache) -> None:
        if not cache.has_state_changed:
            return
        try:
            self.settings.token_cache_path.write_text(cache.serialize())
            logger.debug(f"Token cache written to {self.settings.token_cache_path}")
        except OSError as e:
            logger.warning(f"Could not write token cache: {e}")

    def _client_credential(self) -> Union[str, dict[str, str]]:
        """Build the confidential-client credential.

        A certificate takes precedence over a client secret when both are
        configured.

        Returns:
            Union[str, dict[str, str]]: Secret string or MSAL certificate dict.

        Raises:
            RuntimeError: If neither a secret nor a certificate is configured.
        """
        if self.settings.uses_certificate:
            return {
                "thumbprint": self.settings.azure_certificate_thumbprint,
                "private_key": self.settings.azure_certificate_path.read_text(),
            }
        if self.settings.azure_client_secret:
            return self.settings.azure_client_secret
        raise RuntimeError(
            "use_client_credentials=true requires AZURE_CLIENT_SECRET or "
            "AZURE_CERTIFICATE_PATH and AZURE_CERTIFICATE_THUMBPRINT to be set"
        )

    def _get_app(self) -> ClientApplication:
        if self._app is not None:
            return self._app

        authority = f"https://login.microsoftonline.com/{self.settings.azure_tenant_id}"
        if self._use_client_credentials:
            self._app = msal.ConfidentialClientApplication(
                client_id=self.settings.azure_client_id,
                client_credential=self._client_credential(),
                authority=authority,
            )
            logger.debug(f"Using app-only authentication against {authority}")
        else:
            self._app = msal.PublicClientApplication(
                client_id=self.settings.azure_client_id,
                authority=authority,
                token_cache=self._load_token_cache(),
            )
            logger.debug(f"Using device-code authentication against {authority}")
        return self._app

    def _get_token_client_credentials(self) -> str:
        app = self._get_app()
        result = app.acquire_token_for_client(scopes=self.GRAPH_APP_SCOPES)
        return _token_from_result(result, "client credentials")

    def acquire_token_by_device_flow(self, flow: dict[str, Any]) -> dict[str, Any]:
        """Block until the operator completes the device-code sign-in.

        Args:
            flow: Payload from ``initiate_device_flow``.

        Returns:
            dict[str, Any]: Raw MSAL result.
        """
        return self._get_app().acquire_token_by_device_flow(flow)

    def _get_token_device_code(self) -> str:
        """
        Acquire a delegated token, silently when a cached account exists.

        Returns:
            str: Access token.

        Raises:
            RuntimeError: If the device flow cannot start or sign-in fails.
        """
        app = self._get_app()

        accounts = app.get_accounts()
        if accounts:
            result = app.acquire_token_silent(scopes=self.GRAPH_SCOPES, account=accounts[0])
            if result and "access_token" in result:
                self._save_token_cache(app.token_cache)
                return _token_from_result(result, "cached account")
            logger.debug(f"Cached account {accounts[0].get('username')} needs a new sign-in")

        flow = app.initiate_device_flow(scopes=self.GRAPH_SCOPES)
        if "user_code" not in flow:
            raise RuntimeError(
                f"Failed to initiate device flow: {flow.get('error_description', 'unknown error')}"
            )

        _print_device_code_prompt(flow)
        result = self.acquire_token_by_device_flow(flow)
        token = _token_from_result(result, "device code")
        self._save_token_cache(app.token_cache)
        return token

    def get_access_token(self) -> str:
        """
        Return a Graph access token for the configured flow.

        Raises:
            RuntimeError: If token acquisition fails.
        """
        if self._use_client_credentials:
            return self._get_token_client_credentials()
        return self._get_token_device_code()

    def get_auth_headers(self) -> dict[str, str]:
        """Headers for one Graph request."""
        return {
            "Authorization": f"Bearer {self.get_access_token()}",
            "Content-Type": "application/json",
        }

    def logout(self) -> None:
        """Forget the device-code sign-in (cache file and in-memory app)."""
        cache_file = self.settings.token_cache_path
        if cache_file.exists():
            cache_file.unlink()
            logger.info(f"Removed token cache {cache_file}")
        self._app = None
