"""HTTP exporter serving FRR metrics and a liveness probe."""

from __future__ import annotations

import argparse
import itertools
import logging
from collections.abc import Sequence
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from .collector import BFDCollector, BGPCollector, render_metrics
from .liveness import check_liveness
from .vtysh import Cli, run_vtysh

DEFAULT_PORT = 7573
DEFAULT_BIND_ADDRESS = "127.0.0.1"
DEFAULT_METRICS_PATH = "/metrics"
LIVENESS_PATH = "/livez"
READ_TIMEOUT = 3.0

METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
NOT_FOUND_BODY = "404 page not found\n"

logger = logging.getLogger(__name__)


class ExporterApp:
    """Routes requests to the metrics collectors and the liveness probe."""

    def __init__(
        self,
        frr_cli: Cli = run_vtysh,
        metrics_path: str = DEFAULT_METRICS_PATH,
        logger: logging.Logger | None = None,
    ) -> None:
        self.frr_cli = frr_cli
        self.metrics_path = metrics_path
        self.logger = logger or logging.getLogger(__name__)
        self.collectors = (
            BGPCollector(frr_cli, self.logger.getChild("bgp")),
            BFDCollector(frr_cli, self.logger.getChild("bfd")),
        )

    def handle(self, path: str) -> tuple[HTTPStatus, str, str]:
        """Answer a request for ``path``: status, content type and body."""
        route = urlsplit(path).path
        if route == self.metrics_path:
            samples = itertools.chain.from_iterable(c.collect() for c in self.collectors)
            return HTTPStatus.OK, METRICS_CONTENT_TYPE, render_metrics(samples)
        if route == LIVENESS_PATH:
            status = check_liveness(self.frr_cli, self.logger)
            if status == HTTPStatus.OK:
                return status, TEXT_CONTENT_TYPE, ""
            if status == HTTPStatus.NOT_FOUND:
                return status, TEXT_CONTENT_TYPE, NOT_FOUND_BODY
            return status, TEXT_CONTENT_TYPE, "failed to call show daemons\n"
        return HTTPStatus.NOT_FOUND, TEXT_CONTENT_TYPE, NOT_FOUND_BODY


class _Server(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], app: ExporterApp) -> None:
        self.app = app
        super().__init__(address, _Handler)


class _Handler(BaseHTTPRequestHandler):
    timeout = READ_TIMEOUT
    server: _Server

    def _respond(self, with_body: bool) -> None:
        status, content_type, body = self.server.app.handle(self.path)
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if with_body:
            self.wfile.write(payload)

    def do_GET(self) -> None:  # noqa: N802
        self._respond(True)

    def do_POST(self) -> None:  # noqa: N802
        self._respond(True)

    def do_HEAD(self) -> None:  # noqa: N802
        self._respond(False)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        self.server.app.logger.debug(format, *args)


def build_server(
    bind_address: str = DEFAULT_BIND_ADDRESS,
    port: int = DEFAULT_PORT,
    metrics_path: str = DEFAULT_METRICS_PATH,
    frr_cli: Cli = run_vtysh,
) -> ThreadingHTTPServer:
    """Create (and bind) the exporter's HTTP server."""
    return _Server((bind_address, port), ExporterApp(frr_cli, metrics_path))


def _port(text: str) -> int:
    try:
        value = int(text, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid port {text!r}") from exc
    if value < 0 or value > 65535:
        raise argparse.ArgumentTypeError(f"invalid port {text!r}")
    return value


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse the exporter's command line."""
    parser = argparse.ArgumentParser(prog="frr-metrics", description="FRR metrics exporter.")
    parser.add_argument(
        "--metrics-port", "-metrics-port", dest="metrics_port", type=_port,
        default=DEFAULT_PORT, help="Port to listen on for web interface.",
    )
    parser.add_argument(
        "--metrics-bind-address", "-metrics-bind-address", dest="metrics_bind_address",
        default=DEFAULT_BIND_ADDRESS, help="The address the metric endpoint binds to",
    )
    parser.add_argument(
        "--metrics-path", "-metrics-path", dest="metrics_path",
        default=DEFAULT_METRICS_PATH, help="Path under which to expose metrics.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the exporter until interrupted; returns the exit status."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.ERROR, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logger.info("FRR metrics exporter starting")
    try:
        server = build_server(args.metrics_bind_address, args.metrics_port, args.metrics_path, run_vtysh)
    except OSError as exc:
        logger.error("error: %s", exc)
        return 1
    logger.info("Starting exporter metricsPath=%s port=%d", args.metrics_path, args.metrics_port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    except OSError as exc:
        logger.error("error: %s", exc)
        return 1
    finally:
        server.server_close()
    return 0