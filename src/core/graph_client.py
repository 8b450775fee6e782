"""
MS Graph client setup with an injected credential provider.

The provider owns the credential (and its optional persistent token cache);
callers build a client from it and may ask it to refresh after an
authentication failure.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import ClientSecretCredential, TokenCachePersistenceOptions
from msgraph import GraphServiceClient

from core.config import GRAPH_APP_ID, GRAPH_CLIENT_SECRET, GRAPH_TENANT_ID, GRAPH_TOKEN_CACHE_NAME
from core.errors import ConfigurationError

T = TypeVar("T")


class CredentialProvider(Protocol):
    """Source of Graph credentials with an explicit refresh contract."""

    def get_credential(self) -> TokenCredential:
        """Return the current credential, creating it on first use."""
        ...

    def refresh(self) -> None:
        """Discard the current credential so the next get_credential() re-authenticates."""
        ...


class ClientSecretProvider:
    """App-registration credential, optionally backed by a persistent token cache."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        cache_name: str | None = None,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.cache_name = cache_name
        self._credential: ClientSecretCredential | None = None

    def get_credential(self) -> ClientSecretCredential:
        if self._credential is None:
            kwargs = {}
            if self.cache_name:
                kwargs["cache_persistence_options"] = TokenCachePersistenceOptions(
                    name=self.cache_name
                )
            self._credential = ClientSecretCredential(
                tenant_id=self.tenant_id,
                client_id=self.client_id,
                client_secret=self.client_secret,
                **kwargs,
            )
        return self._credential

    def refresh(self) -> None:
        if self._credential is not None:
            self._credential.close()
        self._credential = None


def default_credential_provider() -> ClientSecretProvider:
    """
    Build the provider from environment configuration.

    Raises:
        ConfigurationError: If any Graph credential setting is empty
    """
    settings = {
        "MICROSOFT_GRAPH_TENANT_ID": GRAPH_TENANT_ID,
        "MICROSOFT_GRAPH_APP_ID": GRAPH_APP_ID,
        "MICROSOFT_GRAPH_CLIENT_SECRET": GRAPH_CLIENT_SECRET,
    }
    for name, value in settings.items():
        if not value:
            raise ConfigurationError(f"{name} is not set", setting_name=name)

    return ClientSecretProvider(
        tenant_id=GRAPH_TENANT_ID,
        client_id=GRAPH_APP_ID,
        client_secret=GRAPH_CLIENT_SECRET,
        cache_name=GRAPH_TOKEN_CACHE_NAME or None,
    )


def create_graph_client(provider: CredentialProvider) -> GraphServiceClient:
    """Create an MS Graph client from the provider's current credential."""
    return GraphServiceClient(credentials=provider.get_credential())


async def with_credential_refresh(
    provider: CredentialProvider,
    fetch: Callable[[GraphServiceClient], Awaitable[T]],
    client_factory: Callable[[CredentialProvider], GraphServiceClient] = create_graph_client,
) -> T:
    """
    Run a Graph fetch, refreshing the credential once if authentication fails.

    A second authentication failure propagates to the caller as fatal.
    """
    try:
        return await fetch(client_factory(provider))
    except ClientAuthenticationError:
        print("  Authentication failed, refreshing credential...")
        provider.refresh()
        return await fetch(client_factory(provider))
