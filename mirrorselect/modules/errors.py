"""Error taxonomy for probing, sampling, ranking and list loading."""


class MirrorSelectError(Exception):
    """Base class for all mirrorselect errors."""


# ---------------------------------------------------------------------------
# Prober
# ---------------------------------------------------------------------------

class ProbeError(MirrorSelectError):
    """A reachability probe against one host failed."""

    def __init__(self, host: str, reason: str):
        super().__init__(f"{host}: {reason}")
        self.host = host
        self.reason = reason


class UnreachableError(ProbeError):
    """The host could not be resolved, or no reply arrived in time."""


class PacketLossError(ProbeError):
    """At least one echo request went unanswered."""

    def __init__(self, host: str, loss_pct: float):
        super().__init__(host, f"packet loss {loss_pct:.1f}%")
        self.loss_pct = loss_pct


class PrivilegeError(ProbeError):
    """Raw ICMP sockets are not permitted for this process."""


# ---------------------------------------------------------------------------
# Sampler / ranking
# ---------------------------------------------------------------------------

class AllAttemptsFailedError(MirrorSelectError):
    """Every download attempt against a host failed."""

    def __init__(self, host: str, attempts: int):
        super().__init__(f"{host}: all {attempts} download attempts failed")
        self.host = host
        self.attempts = attempts


class EmptyGroupError(MirrorSelectError):
    """No candidate of a group survived measurement."""

    def __init__(self, group: str):
        super().__init__(f"no eligible candidate in group {group!r}")
        self.group = group


# ---------------------------------------------------------------------------
# Domain lists
# ---------------------------------------------------------------------------

class FormatError(MirrorSelectError, ValueError):
    """A domain list file is malformed."""

    def __init__(self, path: str, message: str, line: int | None = None):
        where = f"{path}:{line}" if line is not None else path
        super().__init__(f"{where}: {message}")
        self.path = path
        self.line = line
