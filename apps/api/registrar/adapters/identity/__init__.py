"""Identity provider client adapters."""

from .base import CredentialRejectedError, IdentityProvider, IdentityProviderError, Unsubscribe
from .firebase_identity import FirebaseIdentityProvider
from .mock_identity import InMemoryIdentityProvider

__all__ = [
    "CredentialRejectedError",
    "IdentityProvider",
    "IdentityProviderError",
    "Unsubscribe",
    "FirebaseIdentityProvider",
    "InMemoryIdentityProvider",
]
