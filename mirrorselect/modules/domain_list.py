"""Domain list loading.

A list file holds one mirror host per line. Blank lines and ``#`` comments
are ignored.
"""

import logging
import re

from mirrorselect.modules.errors import FormatError

logger = logging.getLogger(__name__)

_LABEL = r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)"
HOSTNAME_RE = re.compile(rf"^{_LABEL}(\.{_LABEL})*\.?$")

# Path prefixes the web app claims for itself.
RESERVED_GROUP_NAMES = frozenset({"api"})


def is_valid_host(name: str) -> bool:
    return len(name) <= 253 and bool(HOSTNAME_RE.match(name))


def load_group(path: str) -> list[str]:
    """Read the host names listed in *path*.

    Raises FileNotFoundError if the file is missing and FormatError if a
    line is not a host name or the file lists no hosts at all.
    """
    hosts: list[str] = []
    try:
        with open(path, encoding="utf-8") as fh:
            for lineno, raw in enumerate(fh, 1):
                line = raw.split("#", 1)[0].strip()
                if not line:
                    continue
                if not is_valid_host(line):
                    raise FormatError(path, f"invalid host name {line!r}", lineno)
                hosts.append(line)
    except UnicodeDecodeError as exc:
        raise FormatError(path, f"not valid UTF-8 text ({exc.reason})") from exc

    if not hosts:
        raise FormatError(path, "no hosts listed")
    logger.info("Loaded %d host(s) from %s", len(hosts), path)
    return hosts


def parse_group_spec(spec: str) -> tuple[str, str]:
    """Split a ``name=path`` command-line value."""
    name, sep, path = spec.partition("=")
    name, path = name.strip(), path.strip()
    if not sep or not name or not path:
        raise ValueError(f"group must be given as NAME=PATH, got {spec!r}")
    if not re.fullmatch(r"[A-Za-z0-9_-]+", name):
        raise ValueError(f"group name {name!r} may only contain letters, digits, '-' and '_'")
    if name in RESERVED_GROUP_NAMES:
        raise ValueError(f"group name {name!r} is reserved")
    return name, path
