"""Data models shared by the API client, the downloader and the merger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ImageRef:
    """Remote image referenced by an edition or a post."""

    src: str


@dataclass(frozen=True)
class Edition:
    """One issue of the newspaper."""

    id: int
    slug: str
    pdf: str
    title: str
    featured_image: Optional[ImageRef] = None


@dataclass(frozen=True)
class Post:
    """A single article belonging to an edition."""

    slug: str
    title: str
    kicker: str = ""
    summary: str = ""
    excerpt: str = ""
    cover_position: Optional[int] = None
    cover_title: str = ""
    cover_summary: str = ""
    cover_image: Optional[ImageRef] = None
    featured_image: Optional[ImageRef] = None


@dataclass
class ContentItem:
    """Markup document placed in the reading order of a publication."""

    file_name: str
    content: bytes
    title: Optional[str] = None
    reftype: str = "text"
    level: int = 1


@dataclass
class Credentials:
    email: str
    password: str

    def to_dict(self) -> Dict[str, str]:
        return {"email": self.email, "password": self.password}


@dataclass
class User:
    user_id: int
    email: str
    membership_code: str
    first_name: str
    last_name: str


@dataclass
class Token:
    expires_in: int
    access_token: str
    refresh_token: str


@dataclass
class Login:
    """Authenticated session persisted between runs."""

    user: User
    token: Token

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": {
                "userId": self.user.user_id,
                "email": self.user.email,
                "membershipCode": self.user.membership_code,
                "firstName": self.user.first_name,
                "lastName": self.user.last_name,
            },
            "token": token_to_dict(self.token),
        }


def token_to_dict(token: Token) -> Dict[str, Any]:
    return {
        "expiresIn": token.expires_in,
        "accessToken": token.access_token,
        "refreshToken": token.refresh_token,
    }


def parse_token(payload: Any) -> Token:
    if not isinstance(payload, dict):
        raise RuntimeError("Unexpected token payload shape: expected an object")
    try:
        return Token(
            expires_in=int(payload["expiresIn"]),
            access_token=str(payload["accessToken"]),
            refresh_token=str(payload["refreshToken"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RuntimeError(f"Malformed token payload: {payload}") from exc


def parse_login(payload: Any) -> Login:
    if not isinstance(payload, dict) or not isinstance(payload.get("user"), dict):
        raise RuntimeError("Unexpected login payload shape: expected user and token")
    user = payload["user"]
    try:
        return Login(
            user=User(
                user_id=int(user["userId"]),
                email=_as_str(user.get("email")),
                membership_code=_as_str(user.get("membershipCode")),
                first_name=_as_str(user.get("firstName")),
                last_name=_as_str(user.get("lastName")),
            ),
            token=parse_token(payload.get("token")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RuntimeError(f"Malformed login payload: {exc}") from exc


def parse_credentials(payload: Any) -> Credentials:
    if not isinstance(payload, dict):
        raise RuntimeError("Unexpected credentials shape: expected an object")
    return Credentials(
        email=_as_str(payload.get("email")),
        password=_as_str(payload.get("password")),
    )


def parse_edition(payload: Any) -> Edition:
    """Normalize an edition record returned by the API."""
    if not isinstance(payload, dict):
        raise RuntimeError("Unexpected edition payload shape: expected an object")
    try:
        return Edition(
            id=int(payload["id"]),
            slug=_as_str(payload["slug"]),
            pdf=_as_str(payload.get("pdf")),
            title=_as_str(payload.get("title")),
            featured_image=_parse_image(payload.get("featuredImage")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RuntimeError(f"Malformed edition payload: {exc}") from exc


def parse_posts(payload: Any) -> List[Post]:
    """Normalize the ``{"data": [...]}`` envelope listing an edition's posts."""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise RuntimeError("Unexpected posts payload shape: expected a data list")

    posts: List[Post] = []
    for item in payload["data"]:
        if not isinstance(item, dict):
            continue
        slug = _as_str(item.get("slug"))
        if not slug:
            continue
        posts.append(
            Post(
                slug=slug,
                title=_as_str(item.get("title")),
                kicker=_as_str(item.get("kicker")),
                summary=_as_str(item.get("summary")),
                excerpt=_as_str(item.get("excerpt")),
                cover_position=_as_int(item.get("coverPosition")),
                cover_title=_as_str(item.get("coverTitle")),
                cover_summary=_as_str(item.get("coverSummary")),
                cover_image=_parse_image(item.get("coverImage")),
                featured_image=_parse_image(item.get("featuredImage")),
            )
        )
    return posts


def _parse_image(value: Any) -> Optional[ImageRef]:
    if isinstance(value, dict) and isinstance(value.get("src"), str) and value["src"]:
        return ImageRef(src=value["src"])
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""
