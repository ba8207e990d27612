"""
Storefront Service Package.

Web front-end for creating a store and browsing its products. Includes the
FastAPI application, clients for the upstream catalog and store APIs, and the
live store creation form.
"""

__version__ = "1.0.0"
__description__ = "Storefront web front-end"

from .app import app
from .config import settings

__all__ = [
    "app",
    "settings",
    "__version__",
]
