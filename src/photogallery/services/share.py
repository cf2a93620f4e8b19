"""Share links for public galleries."""

from dataclasses import dataclass
from urllib.parse import quote

from ..config import get_site_url

# Characters encodeURIComponent leaves alone, so links match what browsers produce
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _encode(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


@dataclass(frozen=True)
class ShareLinks:
    gallery_url: str
    text: str
    facebook: str
    twitter: str
    email: str


def gallery_url(username: str, site_url: str | None = None) -> str:
    """Public URL of a user's gallery."""
    base = (site_url or get_site_url()).rstrip("/")
    return f"{base}/?gallery={_encode(username)}"


def share_text(display_name: str) -> str:
    return f"Check out {display_name}'s beautiful photo gallery!"


def build_share_links(username: str, display_name: str | None = None, site_url: str | None = None) -> ShareLinks:
    """Gallery URL plus Facebook, Twitter and e-mail share links."""
    url = gallery_url(username, site_url)
    name = display_name or username
    text = share_text(name)
    subject = f"{name}'s Photo Gallery"
    body = f"{text}\n\n{url}"

    return ShareLinks(
        gallery_url=url,
        text=text,
        facebook=f"https://www.facebook.com/sharer/sharer.php?u={_encode(url)}",
        twitter=f"https://twitter.com/intent/tweet?text={_encode(text)}&url={_encode(url)}",
        email=f"mailto:?subject={_encode(subject)}&body={_encode(body)}",
    )
