from .sheet import SheetTable
from .synchronizer import RowSynchronizer

__all__ = ['SheetTable', 'RowSynchronizer']
