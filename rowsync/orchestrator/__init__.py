"""
Run-level coordination: fetch each item's sheet, sync it, upload it back.
"""
