"""
Catalog service package.

Serves users, books, authors and genres over HTTP. It provides:

- app.main: API surface for catalog reads, writes and health.
- app.catalog: Service layer wiring reads through the cache and
  invalidating cache keys after every successful write.
- app.caching: In-process TTL cache, key namespace, invalidation rules.
- app.persistence: Backing store interface and PostgreSQL implementation.

Guidelines:
- The database is the source of truth; the cache only holds copies.
- Every write that commits must invalidate through the coordinator.
- The cache is owned by the service instance, never module-global.
"""
