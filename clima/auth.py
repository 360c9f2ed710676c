"""Login handling: cached tokens, stored credentials and token refresh."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from .client import ManifestoClient
from .config import CREDENTIALS_FILE, LOGIN_FILE
from .models import Credentials, Login, parse_credentials, parse_login

logger = logging.getLogger("clima.auth")


class CredentialsRequired(RuntimeError):
    """Raised when no cached login and no credentials are available."""


def load_login(path: Path) -> Login:
    with path.open("r", encoding="utf-8") as handle:
        return parse_login(json.load(handle))


def save_login(login: Login, path: Path) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(login.to_dict(), handle)


def resolve_credentials(
    email: Optional[str],
    password: Optional[str],
    credentials_path: Path = CREDENTIALS_FILE,
) -> Credentials:
    """Prefer credentials given on the command line, then ``credentials.json``."""
    if email and password:
        return Credentials(email=email, password=password)
    if credentials_path.is_file():
        with credentials_path.open("r", encoding="utf-8") as handle:
            return parse_credentials(json.load(handle))
    raise CredentialsRequired(
        f"Credentials required: pass --email/--password or create {credentials_path}"
    )


def authenticate(
    client: ManifestoClient,
    email: Optional[str] = None,
    password: Optional[str] = None,
    login_path: Path = LOGIN_FILE,
    credentials_path: Path = CREDENTIALS_FILE,
) -> Login:
    """Authenticate ``client``, refreshing a cached login when one exists."""
    if login_path.is_file():
        login = load_login(login_path)
        # Refreshed on every run; the expiry is not tracked.
        login.token = client.refresh(login.token.refresh_token)
        logger.debug("Reusing cached login from %s", login_path)
    else:
        credentials = resolve_credentials(email, password, credentials_path)
        login = client.login(credentials)
    save_login(login, login_path)
    return login
