from .sources import (
    CredentialResolver,
    KeyringKeyStore,
    MemoryKeyStore,
    SecretsResolver,
    sanitize_key,
)

__all__ = ["CredentialResolver", "KeyringKeyStore", "MemoryKeyStore", "SecretsResolver", "sanitize_key"]
