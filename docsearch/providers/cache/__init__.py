"""Cache providers.

MemoryCacheProvider is a per-process TTL cache.  For multi-worker
deployments, swap in a shared backend implementing ICacheProvider.
"""

from docsearch.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
