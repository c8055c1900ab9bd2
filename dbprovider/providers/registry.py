"""
Provider Registry
=================

Maps a backend key (as found in the host's database configuration) to the
factory that constructs the matching provider. Providers register
themselves at import time:

    @register_provider("PostgreSQL", "postgres")
    class PostgresDatabaseProvider: ...

    provider = create_provider("postgres", logger=my_logger)

Keys are case-insensitive.
"""

import logging
from typing import Any, Callable, Dict, List

from dbprovider.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., Any]

_registry: Dict[str, ProviderFactory] = {}


def _normalize_key(key: str) -> str:
    return key.strip().lower()


def register_provider(key: str, *aliases: str) -> Callable[[ProviderFactory], ProviderFactory]:
    """
    Class/function decorator registering a provider factory.

    Parameters
    ----------
    key : str
        Primary backend key.
    *aliases : str
        Additional keys resolving to the same factory.

    Raises
    ------
    ValueError
        If any of the keys is already registered to another factory.
    """

    def decorator(factory: ProviderFactory) -> ProviderFactory:
        for name in (key, *aliases):
            normalized = _normalize_key(name)
            existing = _registry.get(normalized)
            if existing is not None and existing is not factory:
                raise ValueError(f"Database provider key '{name}' is already registered.")
            _registry[normalized] = factory
            logger.debug("Registered database provider '%s' -> %s", name, getattr(factory, "__name__", factory))
        return factory

    return decorator


def unregister_provider(key: str) -> None:
    """Remove a key; unknown keys are ignored."""
    _registry.pop(_normalize_key(key), None)


def get_provider_factory(key: str) -> ProviderFactory:
    """
    Look up the factory registered for `key`.

    Raises
    ------
    ConfigurationError
        If no provider is registered under `key`.
    """
    try:
        return _registry[_normalize_key(key)]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported database provider '{key}'. Registered providers: {', '.join(registered_providers()) or 'none'}."
        ) from None


def create_provider(key: str, **kwargs: Any) -> Any:
    """Construct the provider registered for `key`, forwarding `kwargs`."""
    return get_provider_factory(key)(**kwargs)


def registered_providers() -> List[str]:
    """Registered keys (normalized), sorted."""
    return sorted(_registry)
