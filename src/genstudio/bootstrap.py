from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

from .config_loader import ConfigError, load_config
from .core.gateway import GenerationGateway
from .logging_setup import configure_logging
from .providers.registry import ProviderRegistry
from .resilience.retry import RetryPolicy, RetryHook, RetryScheduler
from .secrets.sources import CredentialResolver, KeyringKeyStore, SecretsResolver
from .tools.studio import Studio


def build_policy(cfg: Dict[str, Any]) -> RetryPolicy:
    retry = cfg.get("retry") or {}
    return RetryPolicy(
        max_retries=int(retry.get("max_retries", 5)),
        base_delay=float(retry.get("base_delay", 3.0)),
        request_timeout=retry.get("request_timeout", 120.0),
    )


def build_transport_factory(cfg: Dict[str, Any]):
    ProviderRegistry.ensure_imports()  # make sure built-ins register

    provider_name = cfg["model"]["provider"]
    provider_cfg = (cfg.get("providers") or {}).get(provider_name, {}) or {}
    try:
        Adapter = ProviderRegistry.get(provider_name)
    except KeyError as e:
        raise ConfigError(
            f"Unknown model.provider '{provider_name}' (expected one of {ProviderRegistry.names()})."
        ) from e

    def factory(api_key: str):
        return Adapter.create(api_key=api_key, provider_cfg=provider_cfg)
    return factory


def build_app(config_path: Path, *, key_store=None, on_retry: Optional[RetryHook] = None,
              setup_logging: bool = False) -> Dict[str, Any]:
    """
    Composition root: load YAML + .env, wire key sources, retry policy,
    gateway and studio.
    Returns: dict with cfg, policy, credentials, key_store, gateway, studio.
    """
    load_dotenv()
    cfg = load_config(config_path)

    if setup_logging:
        configure_logging((cfg.get("logging") or {}).get("level", "INFO"))

    secrets_cfg = cfg.get("secrets") or {}
    default_key = SecretsResolver(
        method=secrets_cfg.get("method", "env"),
        mapping=secrets_cfg.get("mapping", {"gemini": {"api_key": "GEMINI_API_KEY"}}),
    )
    key_store = key_store if key_store is not None else KeyringKeyStore()
    credentials = CredentialResolver(user_store=key_store, default=default_key, provider="gemini")

    policy = build_policy(cfg)
    gateway = GenerationGateway(
        credentials,
        build_transport_factory(cfg),
        scheduler=RetryScheduler(policy, on_retry=on_retry),
    )
    studio = Studio(
        gateway,
        image_model=cfg["model"]["image"],
        text_model=cfg["model"]["text"],
        pacing=float((cfg.get("batch") or {}).get("pacing", 3.0)),
    )

    return {
        "cfg": cfg,
        "policy": policy,
        "credentials": credentials,
        "key_store": key_store,
        "gateway": gateway,
        "studio": studio,
    }
