"""
pocket_http_db — gateway configuration API backed by PostgreSQL.

Serves pay plans, blockchains, applications, load balancers and redirects
from an in-memory read cache. Every write is confirmed by the store before
the cache reflects it.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
