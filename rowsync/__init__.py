"""
RowSync - publish spreadsheet rows to messaging channels and static catalogs.
"""

__version__ = '1.0.0'
