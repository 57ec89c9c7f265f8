"""
Abstract Local Store Interface

Durable on-device key/value persistence for the current AppState and the
user's preferences. Reads happen synchronously at startup; writes happen
synchronously on every mutation.

The persisted record is conceptually:
    {app_state, language, theme: "dark"|"light", authenticated: bool}
Each key is independently readable and writable. Durability guarantee:
visible to the next process start on the same device, nothing stronger.

DESIGN DECISION: Implementations only provide raw get/set/remove of JSON
values. The typed accessors below are shared, so every store validates
state the same way.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError

from smartfinance.models.backup import Language, Theme
from smartfinance.models.state import AppState


STATE_KEY = "app_state"
LANGUAGE_KEY = "language"
THEME_KEY = "theme"
AUTH_KEY = "authenticated"


class LocalStoreInterface(ABC):
    """
    Abstract interface for the on-device store.

    Any implementation (JSON file, in-memory, OS keychain, ...) must
    implement get/set/remove.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Read a JSON value.

        Returns:
            The stored value, or None if the key was never written
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Durably write a JSON value.

        Raises:
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Removing a missing key is not an error."""
        pass

    # -------------------------------------------------------------------------
    # Typed accessors
    # -------------------------------------------------------------------------

    def load_state(self) -> Optional[AppState]:
        """
        Load the persisted AppState.

        Returns:
            The state, or None on first start

        Raises:
            CorruptStoreError: If a state is stored but cannot be parsed
        """
        raw = self.get(STATE_KEY)
        if raw is None:
            return None
        try:
            return AppState.model_validate(raw)
        except ValidationError as e:
            raise CorruptStoreError(f"Stored state is invalid: {e}") from e

    def save_state(self, state: AppState) -> None:
        self.set(STATE_KEY, state.to_document())

    def load_language(self) -> Language:
        raw = self.get(LANGUAGE_KEY)
        try:
            return Language(raw)
        except ValueError:
            return Language.ENGLISH

    def save_language(self, language: Language) -> None:
        self.set(LANGUAGE_KEY, language.value)

    def load_dark_mode(self) -> bool:
        return self.get(THEME_KEY) == Theme.DARK.value

    def save_dark_mode(self, is_dark: bool) -> None:
        self.set(THEME_KEY, Theme.DARK.value if is_dark else Theme.LIGHT.value)

    def load_authenticated(self) -> bool:
        return self.get(AUTH_KEY) is True

    def save_authenticated(self, authenticated: bool) -> None:
        if authenticated:
            self.set(AUTH_KEY, True)
        else:
            self.remove(AUTH_KEY)


class StoreError(Exception):
    """Base exception for local store operations."""
    pass


class CorruptStoreError(StoreError):
    """Stored data exists but cannot be read back."""
    pass
