"""
Remote-first data access.

- gateway.py: tries the HTTP API, falls back to the local store when unreachable
- connectivity.py: last-known online/offline state
"""
