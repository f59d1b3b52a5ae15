"""
Adapters bundled with urpc.

Production adapters (relational drivers, browser stores) live outside this
package and only need to satisfy `DataSourceAdapter`.
"""

from .base import BaseAdapter, DataSourceAdapter
from .memory import MemoryAdapter

__all__ = ["DataSourceAdapter", "BaseAdapter", "MemoryAdapter"]
