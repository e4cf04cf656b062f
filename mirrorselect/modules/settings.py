"""Runtime settings collected from the command line."""

import argparse
from dataclasses import dataclass, field

from mirrorselect.modules.domain_list import parse_group_spec
from mirrorselect.modules.ranking import RANK_KEYS
from mirrorselect.modules.throughput import DEFAULT_PROBE_PATH

DEFAULT_GROUP_FILES = {"single": "single.txt", "multi": "multi.txt"}


@dataclass
class GroupSource:
    name: str
    path: str
    sample_throughput: bool = True


@dataclass
class Settings:
    """Tunables for probing, sampling, refreshing and serving."""
    groups: list[GroupSource] = field(default_factory=list)
    probe_count: int = 1
    probe_timeout: float = 1.0
    threads: int = 32
    download_timeout: float = 10.0
    probe_path: str = DEFAULT_PROBE_PATH
    interval_minutes: float = 10.0
    rank_by: str = "latency"
    host: str = "0.0.0.0"
    port: int = 1340

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Settings":
        if args.group:
            pairs = [parse_group_spec(s) for s in args.group]
            latency_only = set(args.latency_only or [])
        else:
            # The catch-all list is ranked on latency alone.
            pairs = [("all", args.file)] + list(DEFAULT_GROUP_FILES.items())
            latency_only = set(args.latency_only) if args.latency_only else {"all"}

        names = [name for name, _ in pairs]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"duplicate group name(s): {', '.join(sorted(duplicates))}")
        unknown = latency_only - set(names)
        if unknown:
            raise ValueError(f"--latency-only names unknown group(s): {', '.join(sorted(unknown))}")

        settings = cls(
            groups=[GroupSource(n, p, n not in latency_only) for n, p in pairs],
            probe_count=args.count,
            probe_timeout=args.timeout,
            threads=args.threads,
            download_timeout=args.download_timeout,
            probe_path=args.probe_path,
            interval_minutes=args.interval,
            rank_by=args.rank_by,
            host=args.host,
            port=args.port,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.groups:
            raise ValueError("at least one group is required")
        if self.probe_count < 1:
            raise ValueError(f"probe count must be at least 1, got {self.probe_count}")
        if self.probe_timeout <= 0:
            raise ValueError(f"probe timeout must be positive, got {self.probe_timeout}")
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")
        if self.download_timeout <= 0:
            raise ValueError(f"download timeout must be positive, got {self.download_timeout}")
        if self.interval_minutes <= 0:
            raise ValueError(f"interval must be positive, got {self.interval_minutes}")
        if self.rank_by not in RANK_KEYS:
            raise ValueError(f"rank_by must be one of {RANK_KEYS}, got {self.rank_by!r}")
        if not self.probe_path.startswith("/"):
            raise ValueError(f"probe path must start with '/', got {self.probe_path!r}")
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
