"""Address comparison helpers for navigation decisions."""

from urllib.parse import urlparse, urlunparse


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def _path(url: str) -> str:
    return urlparse(url).path.rstrip("/")


def fragment_of(url: str) -> str:
    """Return the fragment of a URL without the leading ``#``."""
    return urlparse(url).fragment


def strip_fragment(url: str) -> str:
    return urlunparse(urlparse(url)._replace(fragment=""))


def same_document(current_url: str, target_url: str) -> bool:
    """
    Check whether two URLs address the same document.

    Same origin and same path (ignoring a trailing slash). Query and
    fragment are not compared.
    """
    if not current_url or not target_url:
        return False
    try:
        return _origin(current_url) == _origin(target_url) and _path(current_url) == _path(target_url)
    except ValueError:
        return False


def is_fragment_change(current_url: str, target_url: str) -> bool:
    """True when the URLs share a document but differ in their fragment."""
    return same_document(current_url, target_url) and fragment_of(current_url) != fragment_of(target_url)


def urls_roughly_match(expected_url: str, actual_url: str) -> bool:
    """
    Loose comparison used to confirm arrival at a destination.

    Origins must match and one path must be a prefix of the other, which
    tolerates trailing slashes and client-side router rewrites. When the
    expected URL carries a fragment, the fragments must match exactly.
    A missing or unparsable URL counts as a match.

    Examples:
        >>> urls_roughly_match("https://a.com/wiki/x", "https://a.com/wiki/x/")
        True
        >>> urls_roughly_match("https://a.com/wiki/x#2", "https://a.com/wiki/x#3")
        False
    """
    if not expected_url or not actual_url:
        return True
    try:
        expected = urlparse(expected_url)
        actual = urlparse(actual_url)
        if _origin(expected_url) != _origin(actual_url):
            return False
    except ValueError:
        return True

    if expected.fragment and expected.fragment != actual.fragment:
        return False

    return actual.path.startswith(expected.path) or expected.path.startswith(actual.path)
