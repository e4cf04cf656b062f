"""Redirect URI rewriting for download requests."""

import re

# Proxies and clients sometimes collapse "https://" to "https:/".
SOURCE_URL_RE = re.compile(r"https:/{1,2}([^/]+)/(.+)")


def extract_domain_and_path(uri: str) -> tuple[str, str] | None:
    """Pull the original domain and path out of a requested path.

    ``/https://downloads.example.com/project/x`` gives
    ``("downloads.example.com", "project/x")``. Returns None if *uri* does
    not embed a source URL.
    """
    match = SOURCE_URL_RE.search(uri)
    if not match:
        return None
    return match.group(1), match.group(2)


def build_redirect_uri(path: str, domain: str) -> str:
    """Point *path* at mirror *domain* using the mirror's direct URL layout."""
    uri = f"https://{domain}/{path}?viasf=1"
    uri = uri.replace("projects", "project", 1)
    uri = uri.replace("/download", "", 1)
    uri = uri.replace("/files", "", 1)
    return uri
