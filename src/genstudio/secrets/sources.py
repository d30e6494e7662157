# src/genstudio/secrets/sources.py

from __future__ import annotations
from typing import Protocol, Optional, Dict, Iterable, List, Union
import logging
import os
import re

import keyring as _keyring
from keyring.errors import KeyringError, PasswordDeleteError

from genstudio.core.errors import InvalidCredentialError, MissingCredentialError
from genstudio.core.ports import KeyStore

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "genstudio"
USER_KEY_ACCOUNT = "user_gemini_api_key"
MIN_USER_KEY_LENGTH = 11

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]")


def sanitize_key(raw: Optional[str]) -> str:
    """
    Drop every char outside printable ASCII, then trim.
    Copy-pasted keys pick up zero-width spaces and smart quotes that the
    HTTP layer refuses to put in a header.
    """
    if not raw:
        return ""
    return _NON_PRINTABLE.sub("", raw).strip()


class SecretSource(Protocol):
    def get(self, service: str) -> Optional[str]: ...


class EnvSource:
    def get(self, service: str) -> Optional[str]:
        # 1) exact env var name
        val = os.getenv(service)
        if val:
            return val.strip()
        # 2) derived names, then the generic injected key
        for key in (f"{service.upper()}_API_KEY", service.upper(), "API_KEY"):
            val = os.getenv(key)
            if val:
                return val.strip()
        return None


class SystemKeyringSource:
    def get(self, service: str) -> Optional[str]:
        try:
            cred = _keyring.get_credential(service, None)
            if cred and getattr(cred, "password", None):
                return cred.password.strip()
            for account in ("API_KEY", "GEMINI_API_KEY", "default", service):
                val = _keyring.get_password(service, account)
                if val:
                    return val.strip()
        except KeyringError as e:
            logger.debug("keyring lookup for %r failed: %s", service, e)
        return None


_ALLOWED_METHODS = {"env", "keyring"}


def _normalise_methods(method: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(method, str):
        methods = [method]
    else:
        methods = list(method)
    norm = []
    for m in methods:
        key = str(m).strip().lower()
        if key not in _ALLOWED_METHODS:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_ALLOWED_METHODS)}")
        if key not in norm:
            norm.append(key)
    return norm


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    sources: List[SecretSource] = []
    for name in _normalise_methods(method):
        if name == "env":
            sources.append(EnvSource())
        elif name == "keyring":
            sources.append(SystemKeyringSource())
    return sources


class SecretsResolver:
    """
    Resolve the deploy-time default key using one or more methods in order.
    mapping: per-provider map of names -> service/env-key
      e.g. { "gemini": { "api_key": "GEMINI_API_KEY" } }
    """
    def __init__(self, method: Union[str, Iterable[str]], mapping: Dict[str, Dict[str, str]] | None = None):
        self._sources = build_secret_sources(method)
        self._map = mapping or {}

    def secret(self, provider: str = "gemini", name: str = "api_key") -> Optional[str]:
        service = self._map.get(provider, {}).get(name, provider)
        for src in self._sources:
            val = src.get(service)
            if val:
                return val
        return None


# ----- user-supplied key stores -----

def _checked(value: str) -> str:
    clean = sanitize_key(value)
    if len(clean) < MIN_USER_KEY_LENGTH:
        raise InvalidCredentialError("API key looks too short; paste the full key.")
    return clean


class MemoryKeyStore:
    def __init__(self, value: Optional[str] = None):
        self._value = value

    def load(self) -> Optional[str]:
        return self._value

    def save(self, value: str) -> str:
        self._value = _checked(value)
        return self._value

    def clear(self) -> None:
        self._value = None


class KeyringKeyStore:
    """User key persisted in the OS keyring under a fixed service/account."""

    def __init__(self, service: str = KEYRING_SERVICE, account: str = USER_KEY_ACCOUNT):
        self.service = service
        self.account = account

    def load(self) -> Optional[str]:
        try:
            return _keyring.get_password(self.service, self.account)
        except KeyringError as e:
            logger.warning("Could not read user API key from keyring: %s", e)
            return None

    def save(self, value: str) -> str:
        clean = _checked(value)
        _keyring.set_password(self.service, self.account, clean)
        return clean

    def clear(self) -> None:
        try:
            _keyring.delete_password(self.service, self.account)
        except PasswordDeleteError:
            pass


class CredentialResolver:
    """
    Active key = user-supplied (if non-empty once sanitized) else injected default.
    Read on every call so a key change applies to the next request.
    """
    def __init__(self, user_store: Optional[KeyStore] = None, default: Union[None, str, SecretsResolver] = None,
                 provider: str = "gemini"):
        self.user_store = user_store
        self.default = default
        self.provider = provider

    def _default_value(self) -> Optional[str]:
        if isinstance(self.default, SecretsResolver):
            return self.default.secret(self.provider, "api_key")
        return self.default

    def source(self) -> Optional[str]:
        """Which source would win right now: 'user', 'default' or None."""
        if self.user_store is not None and sanitize_key(self.user_store.load()):
            return "user"
        if sanitize_key(self._default_value()):
            return "default"
        return None

    def resolve(self) -> str:
        if self.user_store is not None:
            user = sanitize_key(self.user_store.load())
            if user:
                return user
        fallback = sanitize_key(self._default_value())
        if fallback:
            return fallback
        raise MissingCredentialError()
