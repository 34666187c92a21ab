"""
Identity Client Interface

Defines the abstract interface for identity providers (OAuth sign-in,
session lookup, incremental scope grants, sign-out). Adapters receive an
instance in their constructor instead of reaching for a global session.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Iterable, Optional

from ..config import OAUTH_REDIRECT_PORT


@dataclass(frozen=True)
class User:
    """Snapshot of the current session."""
    credentials: Any
    granted_scopes: FrozenSet[str] = frozenset()
    account_id: Optional[str] = None

    def has_scopes(self, scopes: Iterable[str]) -> bool:
        return set(scopes).issubset(self.granted_scopes)


@dataclass
class Presenter:
    """
    How a consent screen is shown to the user.

    Browser mode opens the provider's page and waits on a loopback redirect.
    Manual mode prints the URL and reads the redirect URL (or code) back
    through ``prompt``, for headless machines.
    """
    manual: bool = False
    port: int = OAUTH_REDIRECT_PORT
    open_browser: bool = True
    prompt: Callable[[str], str] = field(default=input, repr=False)


class IdentityClient(ABC):
    """
    Abstract base class for identity providers.

    Implementations persist the session themselves (token file, keyring,
    ...). ``current_user`` must be cheap enough to call on every operation.
    """

    provider: str = "base"

    @abstractmethod
    def current_user(self) -> Optional[User]:
        """Return the signed-in user, or None when there is no session."""
        pass

    @abstractmethod
    def sign_in(self, client_id: str, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        """
        Run the interactive sign-in flow.

        Raises:
            Exception: whatever the underlying flow raises on rejection or
                cancellation; adapters map it to SignInError.
        """
        pass

    @abstractmethod
    def add_scopes(self, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        """Request additional scopes for the current user."""
        pass

    @abstractmethod
    def sign_out(self) -> None:
        """Forget the local session."""
        pass
