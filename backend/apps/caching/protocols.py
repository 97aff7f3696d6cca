from typing import Any, Optional, Protocol


class CacheBackendProtocol(Protocol):
    """Subset of the Django cache API used by ``CacheService``."""

    def get(self, key: str, default: Any = None, version: Optional[int] = None) -> Any:
        ...

    def set(self, key: str, value: Any, timeout: Any = ..., version: Optional[int] = None) -> Any:
        ...

    def delete(self, key: str, version: Optional[int] = None) -> Any:
        ...

    def add(self, key: str, value: Any, timeout: Any = ..., version: Optional[int] = None) -> bool:
        ...

    def incr(self, key: str, delta: int = 1, version: Optional[int] = None) -> int:
        ...
