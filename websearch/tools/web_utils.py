from __future__ import annotations

import re
from urllib.parse import urlparse

# Sources that are low value or hard to extract: discussion threads, microblogs,
# social posts, video watch pages.
EXCLUDED_URL_PATTERNS = (
    "reddit.com/r/",
    "twitter.com",
    "facebook.com",
    "instagram.com",
    "tiktok.com",
    "linkedin.com/posts",
    "youtube.com/watch",
    "youtu.be/",
    "vimeo.com/",
)
EXCLUDED_HOSTS = ("x.com", "www.x.com", "mobile.twitter.com")
EXCLUDED_SUFFIXES = (".pdf",)


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc, result.hostname])
    except Exception:
        return False


def is_excluded(url: str) -> bool:
    """True when the URL matches the denylist."""
    lowered = url.lower()
    if any(pattern in lowered for pattern in EXCLUDED_URL_PATTERNS):
        return True
    parsed = urlparse(lowered)
    if (parsed.hostname or "") in EXCLUDED_HOSTS:
        return True
    return parsed.path.endswith(EXCLUDED_SUFFIXES)


def is_eligible(url: str) -> bool:
    if not isinstance(url, str) or not is_valid_url(url.strip()):
        return False
    return not is_excluded(url.strip())


def clean_content(text: str, max_length: int = 8000) -> str:
    """Clean extracted content: collapse blank runs and spaces, trim to max length."""
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text

