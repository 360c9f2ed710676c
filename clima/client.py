"""HTTP client for the newspaper content API."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import requests

from .config import BASE_URL, REQUEST_TIMEOUT_SECONDS
from .models import (
    Credentials,
    Edition,
    Login,
    Post,
    Token,
    parse_edition,
    parse_login,
    parse_posts,
    parse_token,
)

logger = logging.getLogger("clima.client")


class ManifestoClient:
    """Thin wrapper over a cookie-keeping ``requests.Session``."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.access_token: Optional[str] = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _auth_headers(self) -> dict:
        if not self.access_token:
            raise RuntimeError("Not authenticated: call login() or refresh() first")
        return {"Authorization": f"Bearer {self.access_token}"}

    def _get(self, url: str, auth: bool = False) -> requests.Response:
        headers = self._auth_headers() if auth else None
        response = self.session.get(url, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response

    def _post_json(self, path: str, payload: Any) -> Any:
        response = self.session.post(self._url(path), json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def latest_edition(self) -> Edition:
        edition = parse_edition(self._get(self._url("wp/editions/latest")).json())
        logger.info("Latest edition: %s", edition.slug)
        return edition

    def login(self, credentials: Credentials) -> Login:
        login = parse_login(self._post_json("auth/login", credentials.to_dict()))
        self.access_token = login.token.access_token
        logger.info("Logged in as %s", login.user.email)
        return login

    def refresh(self, refresh_token: str) -> Token:
        token = parse_token(self._post_json("auth/token", {"refreshToken": refresh_token}))
        self.access_token = token.access_token
        logger.debug("Access token refreshed, expires in %ss", token.expires_in)
        return token

    def edition_posts(self, edition_id: int) -> List[Post]:
        response = self._get(self._url(f"wp/editions/{edition_id}/posts"), auth=True)
        posts = parse_posts(response.json())
        logger.info("Edition %s has %d posts", edition_id, len(posts))
        return posts

    def download_pdf(self, pdf_slug: str) -> bytes:
        url = self._url(f"wp/pdfs/slug/{pdf_slug}/download")
        logger.info("Downloading PDF %s", url)
        return self._get(url, auth=True).content

    def download_post_epub(self, slug: str) -> bytes:
        return self._get(self._url(f"wp/posts/{slug}/download/epub"), auth=True).content

    def download_image(self, url: str) -> bytes:
        return self._get(url, auth=bool(self.access_token)).content
