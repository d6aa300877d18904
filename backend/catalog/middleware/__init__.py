"""
Movie Catalog Backend: Middleware Package
============================================

Middleware Chain:
    Request → [Request ID] → [Access Log] → [CORS] → Route Handler

    Request ID runs first so the access log line and every error body for
    the request carry the same correlation id.
"""
