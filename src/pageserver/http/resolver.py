"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a raw request path onto a file inside the base directory, or onto
nothing at all.

=============================================================================
DIRECTORY ROUTING
=============================================================================

Every request path names a DIRECTORY. The file served is always the
index.html inside it:

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │  Request path                │  File (relative to base directory)  │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │  /                           │  index.html                          │
    │  (empty)                     │  index.html                          │
    │  /docs                       │  docs/index.html                     │
    │  /docs/                      │  docs/index.html                     │
    │  //docs///intro/             │  docs/intro/index.html               │
    │  /docs?x=1#top               │  docs/index.html                     │
    │  /docs/index.html            │  docs/index.html/index.html  (404)   │
    └──────────────────────────────┴──────────────────────────────────────┘

Query strings and fragments are not part of the routing key. Empty
segments are dropped, which collapses repeated slashes and makes a
trailing slash irrelevant.

=============================================================================
CONFINEMENT
=============================================================================

    base_dir ──resolve(strict)──► /srv/site/pages          (canonical base)
                                        │
    "/../../etc/passwd"                 │ join
        │                               ▼
        └─normalize─► ../../etc/passwd/index.html
                                        │
                                        ▼ resolve(strict)
                              /etc/passwd/index.html      (canonical candidate)
                                        │
                                        ▼ relative_to(canonical base)?
                                   ValueError ──► None     (not found)

resolve() makes the path absolute, removes "." and "..", and follows
every symlink, so both `..` traversal and a symlink inside the base that
points outside it end up as a canonical path that fails the prefix check.
The prefix check compares path COMPONENTS (Path.relative_to), so a sibling
directory such as /srv/site/pages2 is never treated as inside
/srv/site/pages.

Escapes, missing files and directories without an index.html all collapse
to the same outcome: None. The client sees one 404 page for all of them.
Escapes are logged on the server side only.

=============================================================================
TIME OF CHECK / TIME OF USE
=============================================================================

The resolved path is checked, then opened later by the response writer.
Those two steps are not atomic. A file replaced by a symlink, renamed or
deleted in between is served (or fails to open) as it is at open time.
Nothing here promises a snapshot of the filesystem; the base directory is
expected to be written only by the operator.

=============================================================================
"""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Optional, Union


logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"

PathLike = Union[str, "os.PathLike[str]"]


class BaseDirectoryError(Exception):
    """The base directory cannot be canonicalized (missing, not a directory)."""


def strip_query_and_fragment(raw_path: str) -> str:
    """Drop everything from the first '?' or '#' onward."""
    path = raw_path.split("?", 1)[0]
    return path.split("#", 1)[0]


def normalize_path(raw_path: str) -> PurePosixPath:
    """
    Turn a raw request path into the relative path of the file to serve.

    No filesystem access happens here. ".." segments are kept as they are;
    they are neutralized by canonicalization in resolve_path().

    Examples:
        >>> normalize_path("/")
        PurePosixPath('index.html')
        >>> normalize_path("/docs/?x=1")
        PurePosixPath('docs/index.html')
    """
    route = strip_query_and_fragment(raw_path)
    segments = [segment for segment in route.split("/") if segment]
    return PurePosixPath(*segments, INDEX_FILE)


def canonical_base(base_dir: PathLike) -> Path:
    """
    Canonicalize the base directory.

    An empty string means the current working directory.

    Raises:
        BaseDirectoryError: If the directory does not exist or is not a
                            directory.
    """
    try:
        base = Path(base_dir or ".").resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise BaseDirectoryError(f"Base directory cannot be canonicalized: {base_dir!r}: {e}") from e

    if not base.is_dir():
        raise BaseDirectoryError(f"Base directory is not a directory: {base}")
    return base


def resolve_path(base_dir: PathLike, raw_path: str) -> Optional[Path]:
    """
    Resolve a request path to a servable file under base_dir.

    Args:
        base_dir: The base directory, as configured (relative or absolute).
        raw_path: The raw path token from the request line.

    Returns:
        The canonical path of an existing regular file inside the canonical
        base directory, or None when the route does not exist, is not a
        regular file, escapes the base directory, or the base directory
        itself is unusable.
    """
    try:
        base = canonical_base(base_dir)
    except BaseDirectoryError as e:
        # Fail closed; this is the operator's problem, not the client's.
        logger.error(str(e))
        return None

    relative = normalize_path(raw_path)

    # ─────────────────────────────────────────────────────────────────
    # CANONICALIZE THE CANDIDATE
    # ─────────────────────────────────────────────────────────────────
    # strict=True raises for anything that does not exist, including
    # a dangling symlink. ValueError covers embedded NUL bytes.
    try:
        candidate = base.joinpath(*relative.parts).resolve(strict=True)
    except (OSError, RuntimeError, ValueError):
        return None

    # ─────────────────────────────────────────────────────────────────
    # CONFINEMENT CHECK
    # ─────────────────────────────────────────────────────────────────
    try:
        candidate.relative_to(base)
    except ValueError:
        logger.warning(f"Path escapes base directory: {raw_path!r} -> {candidate}")
        return None

    # ─────────────────────────────────────────────────────────────────
    # EXISTENCE CHECK
    # ─────────────────────────────────────────────────────────────────
    # is_file() follows symlinks, but candidate is already symlink-free.
    if not candidate.is_file():
        return None

    return candidate


class PathResolver:
    """
    Path resolution bound to one base directory.

    The base directory is stored as configured and canonicalized again on
    every call, so there is no cached state to go stale if the operator
    swaps the directory while the server runs.

    Usage:
        resolver = PathResolver("pages")
        target = resolver.resolve("/docs?x=1")     # Path or None
        fallback = resolver.fallback_page()        # pages/error404.html
    """

    def __init__(self, base_dir: PathLike, error_page: str = "error404.html"):
        self.base_dir = base_dir
        self.error_page = error_page

    def resolve(self, raw_path: str) -> Optional[Path]:
        """Resolve a raw request path. See resolve_path()."""
        return resolve_path(self.base_dir, raw_path)

    def fallback_page(self) -> Path:
        """
        Path of the 404 page at the root of the base directory.

        Not canonicalized and not checked for existence: the operator owns
        this file, and the response writer reports it if it is missing.
        """
        return Path(self.base_dir or ".") / self.error_page

    def check_base_dir(self) -> Path:
        """Canonicalize the base directory now, raising BaseDirectoryError."""
        return canonical_base(self.base_dir)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# normalize_path()  pure string → relative path (routing rules)
# resolve_path()    canonicalize base, join, canonicalize, prefix check,
#                   regular-file check
# PathResolver      the same, bound to a configured base directory
#
# DO NOT replace this with string concatenation plus an extension swap
# ("pages" + path + ".html"). Without canonicalization such a resolver
# serves anything the process can read.
# =============================================================================
