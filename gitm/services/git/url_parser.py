"""Parsing of git remote URLs into repository identities."""

from typing import Tuple

from gitm.exceptions import InvalidURLFormatError, UnsupportedURLFormatError

HTTP_SCHEMES = ("https://", "http://")


def split_url(url: str) -> Tuple[str, str, str]:
    """Split a remote URL into ``(host, organization, name)``.

    Supports SSH remotes (``git@github.com:org/repo.git``) and HTTP(S)
    remotes (``https://github.com/org/repo``). A trailing ``.git`` is
    ignored.

    Raises:
        InvalidURLFormatError: the URL is SSH or HTTP(S) but malformed
        UnsupportedURLFormatError: any other kind of URL
    """
    url = url.strip()
    if url.endswith(".git"):
        url = url[: -len(".git")]

    lowered = url.lower()
    if lowered.startswith(HTTP_SCHEMES):
        return _split_http_url(url)
    if "://" in url:
        raise UnsupportedURLFormatError(url)
    if "@" in url.split("/", 1)[0]:
        return _split_ssh_url(url)
    raise UnsupportedURLFormatError(url)


def _split_ssh_url(url: str) -> Tuple[str, str, str]:
    user_host, sep, path = url.partition(":")
    if not sep:
        raise InvalidURLFormatError(url, "invalid SSH git URL format")

    host = user_host.rpartition("@")[2]
    segments = path.split("/")
    if len(segments) < 2:
        raise InvalidURLFormatError(url, "invalid repository path in SSH URL")

    # Deeper paths (e.g. GitLab subgroups) keep only the innermost group
    organization, name = segments[-2], segments[-1]
    _require_segments(url, host, organization, name)
    return host, organization, name


def _split_http_url(url: str) -> Tuple[str, str, str]:
    segments = url.split("://", 1)[1].split("/")
    if len(segments) < 3:
        raise InvalidURLFormatError(url, "invalid HTTPS git URL format")

    host, organization, name = segments[0], segments[1], segments[-1]
    _require_segments(url, host, organization, name)
    return host, organization, name


def _require_segments(url: str, host: str, organization: str, name: str) -> None:
    if not host or not organization or not name:
        raise InvalidURLFormatError(url, "git URL has an empty host, organization or name")
