"""
NTP Exporter HTTP Server

WSGI application serving the metrics document on the telemetry path and a
landing page on "/".
"""

import logging
import socket
from socketserver import ThreadingMixIn
from typing import Callable, Iterable, Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

from . import __version__

logger = logging.getLogger(__name__)

LANDING_PAGE = """<html>
<head><title>NTP Exporter</title></head>
<body>
<h1>NTP Exporter</h1>
<p>Measuring clock drift against <code>{server}</code></p>
<p><a href="{telemetry_path}">Metrics</a></p>
<p>Version {version}</p>
</body>
</html>
"""


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """One thread per request so the landing page answers during a long scrape."""
    daemon_threads = True


class ThreadingWSGIServerV6(ThreadingWSGIServer):
    address_family = socket.AF_INET6


def server_class_for(host: str):
    """IPv6 literals (as left by split_listen_address) need an AF_INET6 socket."""
    if ':' in host:
        return ThreadingWSGIServerV6
    return ThreadingWSGIServer


class _QuietHandler(WSGIRequestHandler):
    """Routes access logs through logging at debug level."""

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")


def create_app(registry: CollectorRegistry, telemetry_path: str = "/metrics",
               server_name: str = "") -> Callable:
    """Build the WSGI application."""
    metrics_app = make_wsgi_app(registry)
    landing = LANDING_PAGE.format(server=server_name, telemetry_path=telemetry_path,
                                  version=__version__).encode('utf-8')

    def app(environ, start_response) -> Iterable[bytes]:
        path = environ.get('PATH_INFO', '/') or '/'

        if path == telemetry_path:
            return metrics_app(environ, start_response)

        if path == '/':
            start_response('200 OK', [('Content-Type', 'text/html; charset=utf-8'),
                                      ('Content-Length', str(len(landing)))])
            return [landing]

        body = b'404 page not found\n'
        start_response('404 Not Found', [('Content-Type', 'text/plain; charset=utf-8'),
                                         ('Content-Length', str(len(body)))])
        return [body]

    return app


def serve(app: Callable, host: str, port: int, ready: Optional[Callable[[WSGIServer], None]] = None):
    """Serve `app` until interrupted."""
    httpd = make_server(host, port, app, server_class_for(host), handler_class=_QuietHandler)
    logger.info(f"Listening on {host or '0.0.0.0'}:{httpd.server_port}")
    if ready is not None:
        ready(httpd)
    try:
        httpd.serve_forever()
    finally:
        httpd.server_close()
