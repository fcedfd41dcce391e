"""Fixed-window limiter over a `limits` storage URI (memory:// or redis://)."""
from limits import parse
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter

class RateLimiter:
    def __init__(self, limit: str, storage_uri: str = "memory://", namespace: str = "auth"):
        self.limit = parse(limit)
        self.namespace = namespace
        self._storage = storage_from_string(storage_uri)
        self._strategy = FixedWindowRateLimiter(self._storage)

    def check(self, key: str) -> bool:
        """Count one attempt for ``key``; False once the window is used up."""
        return self._strategy.hit(self.limit, self.namespace, key)

    def reset(self) -> None:
        self._storage.reset()
