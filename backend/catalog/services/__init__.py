"""
Movie Catalog Backend: Services Layer
========================================

Service Inventory:
    - MovieService: create / list / delete against a MovieStore
"""
