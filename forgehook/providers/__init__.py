from forgehook.providers.base import Driver, ScmProvider
from forgehook.providers.factory import (
    DriverIdentifier,
    ProviderFactory,
    ensure_bbc_endpoint,
    ensure_ghe_endpoint,
    from_repo_url,
    new_client,
    new_client_from_environment,
    new_client_with_basic_auth,
    new_webhook_service,
    resolve_driver,
)

__all__ = [
    "Driver",
    "DriverIdentifier",
    "ProviderFactory",
    "ScmProvider",
    "ensure_bbc_endpoint",
    "ensure_ghe_endpoint",
    "from_repo_url",
    "new_client",
    "new_client_from_environment",
    "new_client_with_basic_auth",
    "new_webhook_service",
    "resolve_driver",
]
