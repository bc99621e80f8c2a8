# Infrastructure layer - database access
"""
Infrastructure layer contains:
- sqlite3 repositories (sync) and their aiosqlite twins (async)
- async connection pool

This layer depends on the domain layer, not vice versa.
"""
