"""Store factory with registry-based configuration."""

import logging
from typing import Any, Callable, Dict, Optional, Type

from scopedroles.config import RolesConfig
from scopedroles.exceptions import InvalidConfigurationError, ValidationError

from .database import RoleStore

logger = logging.getLogger(__name__)

StoreConfigurator = Callable[[RolesConfig, Dict[str, Any]], RoleStore]

# Registry for store implementations
_STORE_REGISTRY: Dict[str, Type[RoleStore]] = {}
# Registry for store configuration functions
_STORE_CONFIGURATORS: Dict[str, StoreConfigurator] = {}


def register_store_type(
    name: str,
    store_class: Type[RoleStore],
    configurator: Optional[StoreConfigurator] = None,
) -> None:
    """Register a store implementation.

    Args:
        name: Store type name to register
        store_class: Class implementing the RoleStore interface
        configurator: Optional function building an instance from the
            configuration and keyword overrides

    Raises:
        ValidationError: If store_class doesn't inherit from RoleStore
        InvalidConfigurationError: If name is already registered
    """
    try:
        is_subclass = issubclass(store_class, RoleStore)
    except TypeError:
        is_subclass = False

    if not is_subclass:
        raise ValidationError(
            f"Store class {getattr(store_class, '__name__', store_class)} must inherit from RoleStore",
            details={"store_class": repr(store_class)},
        )

    if name in _STORE_REGISTRY:
        raise InvalidConfigurationError(
            "store_type", name, "Store type is already registered"
        )

    _STORE_REGISTRY[name] = store_class
    _STORE_CONFIGURATORS[name] = configurator or (
        lambda config, kwargs: store_class(**kwargs)
    )


def unregister_store_type(name: str) -> None:
    """Unregister a store implementation."""
    _STORE_REGISTRY.pop(name, None)
    _STORE_CONFIGURATORS.pop(name, None)


def list_store_types() -> Dict[str, Type[RoleStore]]:
    """Get all registered store types."""
    return _STORE_REGISTRY.copy()


def get_store(
    store_type: Optional[str] = None,
    config: Optional[RolesConfig] = None,
    **kwargs: Any,
) -> RoleStore:
    """Create a store instance.

    Args:
        store_type: Registered store type; defaults to ``config.store_type``
        config: Configuration; read from the environment if omitted
        **kwargs: Store-specific options

    Returns:
        Store instance

    Raises:
        InvalidConfigurationError: If the type is unknown or the store
            cannot be configured
    """
    config = config or RolesConfig.from_env()
    store_type = store_type or config.store_type

    if store_type not in _STORE_REGISTRY:
        available = ", ".join(sorted(_STORE_REGISTRY))
        raise InvalidConfigurationError(
            "store_type",
            store_type,
            f"Store type is not registered. Available types: {available}",
            details={"available_types": available},
        )

    try:
        store = _STORE_CONFIGURATORS[store_type](config, kwargs)
    except Exception as e:
        raise InvalidConfigurationError(
            "store_configuration",
            store_type,
            f"Failed to configure store: {e}",
            details={"kwargs": kwargs},
        ) from e

    logger.debug(f"Created {store_type} store: {type(store).__name__}")
    return store


def _register_builtin_stores() -> None:
    """Register built-in store implementations."""
    from .memory import MemoryStore

    register_store_type(
        "memory",
        MemoryStore,
        lambda config, kwargs: MemoryStore(kwargs.get("documents")),
    )

    # MongoDB is optional and may not be available
    try:
        from .mongodb import MongoStore
    except ImportError:
        return

    register_store_type(
        "mongodb",
        MongoStore,
        lambda config, kwargs: MongoStore(config.model_copy(update=kwargs)),
    )


_register_builtin_stores()


__all__ = [
    "register_store_type",
    "unregister_store_type",
    "list_store_types",
    "get_store",
]
