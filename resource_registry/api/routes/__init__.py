"""
API route modules for the resource registry.

This package contains subrouters for:
- Resources: CRUD, paged search and reordering of navigation resources

Routers are included from resource_registry.api.main (under the /api/v1 prefix).
"""
