"""
Clients for the remote services rowsync talks to (Google Drive, Telegram).
"""
