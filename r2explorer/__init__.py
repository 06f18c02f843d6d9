"""
R2 Explorer - a desktop backend for browsing Cloudflare R2 storage.

This package contains the complete application:
- core: Framework-agnostic explorer logic
- infrastructure: Object storage and credential persistence
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
