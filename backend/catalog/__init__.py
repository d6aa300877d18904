"""
Movie Catalog Backend: Application Package
=============================================

What:  A small HTTP API over a single MongoDB collection of movie records.
How:   FastAPI routes delegate to a stateless service, which talks to the
       store through an explicitly constructed MovieStore client.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      Services (Business Logic)      │  ← create / list / delete
    ├─────────────────────────────────────┤
    │   Schemas (Pydantic) & Documents    │  ← wire contract ⇄ BSON shape
    ├─────────────────────────────────────┤
    │   MovieStore (pymongo async client) │  ← connection lifecycle
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
