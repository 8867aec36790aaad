"""Pure functions that derive provider facts from names and git remote URLs.

Nothing here performs I/O. Two remote shapes are understood:

* SSH: ``git@gitlab.com:group/project.git`` and
  ``ssh://git@gitlab.com:2222/group/project.git``
* HTTP(S): ``https://gitlab.example.com/group/sub/project.git``, optionally
  with userinfo or a port.

SSH remotes map to an ``https://<host>`` base URL because the REST API is
only reachable over HTTPS.
"""

from __future__ import annotations

import re
from typing import NamedTuple
from urllib.parse import urlsplit

from basalt.exceptions import ProviderDetectionFailed, UnknownProvider, UrlExtractionFailed
from basalt.models import ProviderKind

DEFAULT_HOST = "gitlab.com"

# user@host:path (scp-like syntax, no scheme)
_SCP_RE = re.compile(r"^(?:[^@/\s]+@)?(?P<host>[^:/\s]+):(?P<path>[^\s]+)$")


class RemoteParts(NamedTuple):
    """Host and project path parsed from a remote URL."""

    scheme: str
    host: str
    port: int | None
    path: str


def _strip_path(path: str) -> str:
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return path.strip("/")


def parse_remote(remote_url: str) -> RemoteParts:
    """Split *remote_url* into scheme, host, port and project path.

    Raises:
        UrlExtractionFailed: If the URL is neither SSH-style nor HTTP(S)-style,
            or has no host or path.
    """
    url = remote_url.strip()
    if "://" in url:
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError:
            raise UrlExtractionFailed(remote_url) from None
        if parts.scheme not in ("http", "https", "ssh", "git+ssh") or not parts.hostname:
            raise UrlExtractionFailed(remote_url)
        path = _strip_path(parts.path)
        if not path:
            raise UrlExtractionFailed(remote_url)
        scheme = "ssh" if "ssh" in parts.scheme else parts.scheme
        return RemoteParts(scheme, parts.hostname, port, path)

    match = _SCP_RE.match(url)
    if match is None:
        raise UrlExtractionFailed(remote_url)
    path = _strip_path(match.group("path"))
    if not path:
        raise UrlExtractionFailed(remote_url)
    return RemoteParts("ssh", match.group("host"), None, path)


def detect_provider(remote_url: str) -> ProviderKind:
    """Guess the provider from a git remote URL.

    Any host containing ``gitlab`` is GitLab, which covers self-hosted
    instances such as ``gitlab.example.com``. ``github.com`` is GitHub.

    Raises:
        ProviderDetectionFailed: If neither matches. The error carries the
            URL verbatim.
    """
    try:
        host = parse_remote(remote_url).host.lower()
    except UrlExtractionFailed:
        host = remote_url.lower()

    if "gitlab" in host:
        return ProviderKind.GITLAB
    if "github.com" in host:
        return ProviderKind.GITHUB
    raise ProviderDetectionFailed(remote_url)


def parse_provider(name: str) -> ProviderKind:
    """Parse a provider name case-insensitively.

    Raises:
        UnknownProvider: Carrying the literal input when it is not a
            supported name.
    """
    try:
        return ProviderKind(name.lower())
    except ValueError:
        raise UnknownProvider(name) from None


def extract_base_url(remote_url: str) -> str:
    """Return the web base URL (``https://gitlab.com``) for *remote_url*.

    HTTP(S) remotes keep their scheme and port; SSH remotes become
    ``https://<host>``.
    """
    parts = parse_remote(remote_url)
    if parts.scheme == "ssh":
        return f"https://{parts.host}"
    netloc = parts.host if parts.port is None else f"{parts.host}:{parts.port}"
    return f"{parts.scheme}://{netloc}"


def extract_project_path(remote_url: str) -> str:
    """Return the project path (``group/sub/project``) for *remote_url*."""
    return parse_remote(remote_url).path


def extract_host(base_url: str) -> str:
    """Return the host of a base or API URL, defaulting to ``gitlab.com``.

    A non-default port is kept, since git credentials and the glab config
    are keyed by ``host:port``.

    ``https://gitlab.example.com/api/v4`` -> ``gitlab.example.com``
    ``http://gitlab.local:8080`` -> ``gitlab.local:8080``
    """
    url = base_url.strip()
    if "://" not in url:
        url = f"https://{url}"
    try:
        parts = urlsplit(url)
        host, port = parts.hostname, parts.port
    except ValueError:
        host, port = None, None
    if not host:
        return DEFAULT_HOST
    return host if port is None else f"{host}:{port}"
