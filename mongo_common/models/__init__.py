"""Document models - the structure stored in MongoDB"""

from .base import BaseDocument

__all__ = ["BaseDocument"]
