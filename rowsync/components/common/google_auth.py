"""
Google OAuth bootstrap for the Drive object store.

Loads a cached user token, refreshes it when expired, or runs the
installed-app flow once and stores the resulting token with owner-only
permissions.
"""

import logging
import os
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from rowsync.interfaces import ConfigurationError

logger = logging.getLogger(__name__)

# If modifying these scopes, delete the previously saved token file.
SCOPES = ['https://www.googleapis.com/auth/drive']


def load_credentials(credentials_file: str, token_file: str) -> Credentials:
    """
    Get user credentials for Drive.

    Args:
        credentials_file: OAuth client secret JSON
        token_file: Cached token JSON (created on first authorization)

    Returns:
        Valid Credentials
    """
    token_path = Path(token_file)
    creds = None
    if token_path.exists():
        try:
            creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
        except ValueError as e:
            logger.warning(f"Could not load token {token_path}: {e}")

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        logger.info("Refreshing expired Google credentials")
        creds.refresh(Request())
    else:
        secrets = Path(credentials_file)
        if not secrets.exists():
            raise ConfigurationError(f"Google client secret file not found: {secrets}")
        flow = InstalledAppFlow.from_client_secrets_file(str(secrets), SCOPES)
        creds = flow.run_local_server(port=0, open_browser=False)

    save_token(token_path, creds)
    return creds


def save_token(token_path: Path, creds: Credentials) -> None:
    """Save the token JSON readable by the owner only."""
    logger.info(f"Saving credential file to: {token_path}")
    token_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w') as f:
        f.write(creds.to_json())


def get_drive_service(credentials_file: str, token_file: str):
    """Build an authorized Drive v3 service."""
    creds = load_credentials(credentials_file, token_file)
    return build('drive', 'v3', credentials=creds, cache_discovery=False)
