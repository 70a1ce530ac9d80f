"""
Bottle - Declarative version pinning for agent tooling
Reconciles installed CLI tools, plugins and MCP servers against a named bottle manifest.
"""

__version__ = "0.4.0"
__author__ = "Cloud Atlas AI"
__license__ = "MIT"

# Submodules are imported on demand to keep CLI startup fast
# from bottle_manager.core import engine, plan

__all__ = ["__version__"]
