"""
Token-based cache invalidation.

Caches values that stay valid until the value store's token changes (any
settled change to the tree). Used to memoize field evaluation results so that
repeated reads within one update cycle never re-run field logic.
"""

from typing import TypeVar, Generic, Optional, Callable, Dict, Hashable

T = TypeVar('T')


class TokenCache(Generic[T]):
    """
    Keyed cache cleared whenever the token changes.

    Example:
        cache = TokenCache(lambda: store.token)
        result = cache.get_or_compute("items.0.name", lambda: evaluate(...))
    """

    def __init__(self, token_provider: Callable[[], int]):
        self._token_provider = token_provider
        self._cache: Dict[Hashable, T] = {}
        self._last_token: int = -1

    def _sync_token(self) -> None:
        current_token = self._token_provider()
        if current_token != self._last_token:
            self._cache.clear()
            self._last_token = current_token

    def get_or_compute(self, key: Hashable, compute_fn: Callable[[], T]) -> T:
        self._sync_token()
        if key in self._cache:
            return self._cache[key]
        value = compute_fn()
        self._cache[key] = value
        return value

    def get(self, key: Hashable) -> Optional[T]:
        """Cached value, or None if missing or the token moved on."""
        self._sync_token()
        return self._cache.get(key)

    def put(self, key: Hashable, value: T) -> None:
        self._sync_token()
        self._cache[key] = value

    def discard(self, key: Hashable) -> None:
        self._cache.pop(key, None)

    def invalidate(self) -> None:
        """Manually invalidate the entire cache."""
        self._cache.clear()
        self._last_token = -1


class SingleValueTokenCache(Generic[T]):
    """Token cache for one value (e.g. the expanded field list of a schema)."""

    def __init__(self, token_provider: Callable[[], int]):
        self._token_provider = token_provider
        self._cached_value: Optional[T] = None
        self._cached_token: int = -1

    def get_or_compute(self, compute_fn: Callable[[], T]) -> T:
        current_token = self._token_provider()
        if current_token == self._cached_token and self._cached_value is not None:
            return self._cached_value
        value = compute_fn()
        self._cached_value = value
        self._cached_token = current_token
        return value

    def invalidate(self) -> None:
        self._cached_value = None
        self._cached_token = -1
