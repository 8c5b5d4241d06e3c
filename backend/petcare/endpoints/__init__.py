# petcare/endpoints/__init__.py

from .symptoms import router as symptoms

__all__ = ["symptoms"]
