"""
GoodData CLI - Three-layer architecture for the GoodData API.

Layers:
- core: Raw types and HTTP client
- sdk: High-level GoodDataClient with nice ergonomics
- cli: Command table, interactive shell and entry point
"""

from gooddata_cli.sdk import GoodDataClient

__version__ = "0.1.0"
__all__ = ["GoodDataClient"]
