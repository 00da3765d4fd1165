"""
Core infrastructure for the Tubely backend.

- auth: Bearer-token extraction and HS256 JWT verification
- database: MongoDB async client (Motor) with connection pooling
"""
