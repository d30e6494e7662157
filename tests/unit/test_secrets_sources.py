# tests/unit/test_secrets_sources.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from genstudio.core.errors import InvalidCredentialError, MissingCredentialError
from genstudio.secrets.sources import (
    CredentialResolver,
    KeyringKeyStore,
    MemoryKeyStore,
    SecretsResolver,
    build_secret_sources,
    sanitize_key,
)


@pytest.mark.parametrize("raw,expected", [
    ("  AIzaSy-abc123  ", "AIzaSy-abc123"),
    ("\u200bAIza\u200bkey\n", "AIzakey"),
    ("\u201cAIzakey\u201d", "AIzakey"),
    ("\t\n", ""),
    ("", ""),
    (None, ""),
])
def test_sanitize_key(raw, expected):
    assert sanitize_key(raw) == expected


@pytest.mark.parametrize("raw", ["  a b  ", "\xa0 key\xa0 ", "x\u200b y", "plain", "  \u2003 "])
def test_sanitize_is_idempotent(raw):
    once = sanitize_key(raw)
    assert sanitize_key(once) == once


def test_user_key_wins_over_default():
    r = CredentialResolver(user_store=MemoryKeyStore(" user-key\u200b "), default="default-key")
    assert r.resolve() == "user-key"
    assert r.source() == "user"


def test_blank_user_key_falls_back_to_default():
    r = CredentialResolver(user_store=MemoryKeyStore("\u200b \n"), default=" default-key ")
    assert r.resolve() == "default-key"
    assert r.source() == "default"


def test_missing_everywhere_raises():
    r = CredentialResolver(user_store=MemoryKeyStore(), default="\u200b")
    assert r.source() is None
    with pytest.raises(MissingCredentialError):
        r.resolve()


def test_key_change_applies_to_next_resolve():
    store = MemoryKeyStore()
    r = CredentialResolver(user_store=store, default="default-key")
    assert r.resolve() == "default-key"
    store.save("personal-key-123")
    assert r.resolve() == "personal-key-123"
    store.clear()
    assert r.resolve() == "default-key"


def test_memory_store_rejects_short_keys():
    store = MemoryKeyStore()
    with pytest.raises(InvalidCredentialError):
        store.save("  short\u200b ")
    assert store.load() is None
    assert store.save(" 0123456789a ") == "0123456789a"


def test_method_string_and_list(monkeypatch):
    # exact env var name via mapping
    monkeypatch.setenv("GEMINI_API_KEY", "key-env")
    r1 = SecretsResolver(method="env", mapping={"gemini": {"api_key": "GEMINI_API_KEY"}})
    assert r1.secret("gemini") == "key-env"

    # service name -> derived env var
    r2 = SecretsResolver(method=["env"], mapping={"gemini": {"api_key": "gemini"}})
    assert r2.secret("gemini") == "key-env"


def test_generic_api_key_env_fallback(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "injected-key")
    r = CredentialResolver(default=SecretsResolver(method="env"))
    assert r.resolve() == "injected-key"


def test_unknown_method_raises():
    with pytest.raises(ValueError):
        build_secret_sources("nope")


class FakeKeyring:
    def __init__(self, credential=None):
        self.store = {}
        self.credential = credential

    def get_credential(self, service, _):
        if self.credential is None:
            return None
        class Cred:
            password = self.credential
        return Cred()

    def get_password(self, service, account):
        return self.store.get((service, account))

    def set_password(self, service, account, value):
        self.store[(service, account)] = value

    def delete_password(self, service, account):
        from keyring.errors import PasswordDeleteError
        if (service, account) not in self.store:
            raise PasswordDeleteError("missing")
        del self.store[(service, account)]


def test_keyring_then_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key-from-env")

    import genstudio.secrets.sources as src
    monkeypatch.setattr(src, "_keyring", FakeKeyring(credential="key-from-keyring"), raising=True)

    r = SecretsResolver(method=["keyring", "env"], mapping={"gemini": {"api_key": "gemini"}})
    assert r.secret("gemini") == "key-from-keyring"

    # Now make keyring miss -> env wins
    monkeypatch.setattr(src, "_keyring", FakeKeyring(), raising=True)
    r2 = SecretsResolver(method=["keyring", "env"], mapping={"gemini": {"api_key": "gemini"}})
    assert r2.secret("gemini") == "key-from-env"


def test_keyring_key_store_roundtrip(monkeypatch):
    import genstudio.secrets.sources as src
    fake = FakeKeyring()
    monkeypatch.setattr(src, "_keyring", fake, raising=True)

    store = KeyringKeyStore()
    assert store.load() is None
    store.save("\u200bmy-personal-key ")
    assert fake.store[("genstudio", "user_gemini_api_key")] == "my-personal-key"
    assert store.load() == "my-personal-key"

    store.clear()
    assert store.load() is None
    store.clear()  # clearing twice is fine
