"""
bucketfs - a hierarchical file manager over a flat object store.

This package contains the complete application:
- core: Framework-agnostic filesystem simulation (keys, folders, listing)
- infrastructure: Object storage clients (R2 and in-memory)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
