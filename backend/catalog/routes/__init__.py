"""
Movie Catalog Backend: API Routes Package
============================================

Route Inventory:
    - movies.py:  POST {prefix}/movies, GET {prefix}/movies[/stream],
                  POST {prefix}/delete, DELETE {prefix}/movies/{id}
    - health.py:  GET  /health

Routes stay thin: read the request, call a MovieService, return the schema.
"""
