from .registry import ProviderRegistry

__all__ = ["ProviderRegistry"]
