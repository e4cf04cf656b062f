"""Mirror Select – Flask redirect service.

Measures a set of mirror hosts per group, keeps the fastest one selected
and redirects download requests to it.

Usage:
    mirrorselect                           # all.txt/single.txt/multi.txt on port 1340
    mirrorselect --group eu=eu.txt --port 8080
"""

import argparse
import logging
import sys
import time

from flask import Flask, jsonify, redirect

from mirrorselect import __version__
from mirrorselect.modules.domain_list import RESERVED_GROUP_NAMES, load_group
from mirrorselect.modules.errors import FormatError, PrivilegeError
from mirrorselect.modules.prober import Prober
from mirrorselect.modules.ranking import RANK_KEYS, RankingEngine
from mirrorselect.modules.redirect import build_redirect_uri, extract_domain_and_path
from mirrorselect.modules.scheduler import Group, RefreshScheduler
from mirrorselect.modules.selection_store import SelectionStore
from mirrorselect.modules.settings import Settings
from mirrorselect.modules.throughput import DEFAULT_PROBE_PATH, ThroughputSampler

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("mirrorselect")

RETRY_AFTER_SECONDS = 60


# ---------------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------------

def create_app(store: SelectionStore, group_names: list[str]) -> Flask:
    """Build the redirect app around an already-populated selection store."""
    reserved = RESERVED_GROUP_NAMES.intersection(group_names)
    if reserved:
        raise ValueError(f"reserved group name(s): {', '.join(sorted(reserved))}")
    app = Flask(__name__)
    # Keep the "//" of the embedded source URL intact.
    app.url_map.merge_slashes = False
    app.config["SELECTION_STORE"] = store
    app.config["GROUPS"] = list(group_names)

    @app.route("/api/selection", methods=["GET"])
    def api_selection():
        snapshot = store.snapshot()
        groups = {}
        for name in app.config["GROUPS"]:
            record = snapshot.get(name)
            groups[name] = {
                "host": record.host if record else None,
                "updated_at": record.updated_at if record else None,
            }
        return jsonify({"groups": groups, "generated_at": time.time()})

    @app.route("/<group>/<path:path>", methods=["GET"], merge_slashes=False)
    def redirect_download(group: str, path: str):
        if group not in app.config["GROUPS"]:
            return jsonify({"error": f"unknown group {group!r}"}), 404

        source = extract_domain_and_path(path)
        if source is None:
            logger.warning("No source URL in request path: %s", path)
            return jsonify({"error": "path must embed an https:// source URL"}), 400

        host = store.read(group)
        if host is None:
            resp = jsonify({"error": f"no mirror selected for {group!r} yet"})
            resp.status_code = 503
            resp.headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
            return resp

        _, original_path = source
        return redirect(build_redirect_uri(original_path, host), code=301)

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Redirect downloads to the fastest mirror")
    parser.add_argument("-v", "--version", action="version", version=__version__)
    parser.add_argument("--file", default="all.txt", help="Domain list for the 'all' group")
    parser.add_argument("--group", action="append", metavar="NAME=PATH",
                        help="Add a group read from PATH (repeatable)")
    parser.add_argument("--latency-only", action="append", metavar="NAME",
                        help="Rank NAME on latency without throughput sampling (repeatable)")
    parser.add_argument("--threads", type=int, default=32, help="Concurrent download attempts per host")
    parser.add_argument("-c", "--count", type=int, default=1, help="ICMP packets per probe")
    parser.add_argument("--timeout", type=float, default=1.0, help="Probe timeout in seconds")
    parser.add_argument("--download-timeout", type=float, default=10.0,
                        help="Timeout of each download attempt in seconds")
    parser.add_argument("--probe-path", default=DEFAULT_PROBE_PATH,
                        help="Reference resource fetched from every mirror")
    parser.add_argument("--interval", type=float, default=10.0, help="Refresh interval in minutes")
    parser.add_argument("--rank-by", choices=RANK_KEYS, default="latency", help="Ranking key")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=1340, help="Port to listen on")
    return parser


def load_groups(settings: Settings) -> list[Group]:
    return [
        Group(name=src.name, hosts=load_group(src.path), sample_throughput=src.sample_throughput)
        for src in settings.groups
    ]


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_args(args)
    except ValueError as exc:
        logger.error("Invalid settings: %s", exc)
        sys.exit(1)

    try:
        groups = load_groups(settings)
    except (OSError, FormatError) as exc:
        logger.error("Cannot load domain list: %s", exc)
        sys.exit(1)

    prober = Prober(count=settings.probe_count, timeout=settings.probe_timeout)
    try:
        prober.check_privileges()
    except PrivilegeError as exc:
        logger.error("Cannot probe mirrors: %s", exc.reason)
        sys.exit(1)

    sampler = ThroughputSampler(
        concurrency=settings.threads,
        timeout=settings.download_timeout,
        probe_path=settings.probe_path,
    )
    engine = RankingEngine(prober, sampler, rank_by=settings.rank_by)
    store = SelectionStore()
    scheduler = RefreshScheduler(groups, engine, store, interval=settings.interval_seconds)
    scheduler.start()

    app = create_app(store, [g.name for g in groups])
    logger.info("Starting Mirror Select %s on http://%s:%s", __version__, settings.host, settings.port)
    logger.info("Groups: %s", ", ".join(g.name for g in groups))
    try:
        app.run(host=settings.host, port=settings.port, debug=False)
    finally:
        scheduler.stop(timeout=5)


if __name__ == "__main__":
    main()
