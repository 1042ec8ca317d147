"""Minimal JSON-over-HTTP server for linked handlers.

``POST /<identifier>`` calls the handler with the decoded JSON body and replies
with its JSON-encoded return value. ``GET /`` lists the available handlers.
Handlers that declare ``models`` or ``services`` parameters receive them.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable, Mapping
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from miniserver.logging import ACCESS_LOGGER, config_runtime_logging

logger = logging.getLogger(__name__)
access_logger = logging.getLogger(ACCESS_LOGGER)

DEFAULT_HOST = "127.0.0.1"  # pragma: no mutate
DEFAULT_PORT = 8000  # pragma: no mutate


def inject_dependencies(
    handler: Callable, dependencies: Mapping[str, object]
) -> Callable:
    """Inject dependencies into a handler function based on its parameters."""
    params = inspect.signature(handler).parameters
    deps = {
        name: dependency for name, dependency in dependencies.items() if name in params
    }
    return lambda payload: handler(payload, **deps)


class HandlerServer(ThreadingHTTPServer):
    """HTTP server holding the dispatch table of injected handlers."""

    daemon_threads = True

    def __init__(
        self,
        address: tuple[str, int],
        handlers: Mapping[str, Callable[[Any], Any]],
    ) -> None:
        super().__init__(address, RequestHandler)
        self.handlers = dict(handlers)


class RequestHandler(BaseHTTPRequestHandler):
    """Dispatch requests to the handlers registered on the server."""

    server: HandlerServer

    def _reply(self, status: HTTPStatus, body: Any) -> None:
        data = json.dumps(body).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self) -> None:  # pylint: disable=invalid-name
        if self.path.rstrip("/"):
            self._reply(HTTPStatus.NOT_FOUND, {"error": "not found"})
            return
        self._reply(HTTPStatus.OK, {"handlers": sorted(self.server.handlers)})

    def do_POST(self) -> None:  # pylint: disable=invalid-name
        name = self.path.strip("/")
        if (handler := self.server.handlers.get(name)) is None:
            self._reply(HTTPStatus.NOT_FOUND, {"error": f"unknown handler '{name}'"})
            return

        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length else b""
        try:
            payload = json.loads(raw) if raw else None
        except json.JSONDecodeError:
            self._reply(HTTPStatus.BAD_REQUEST, {"error": "invalid JSON body"})
            return

        try:
            result = handler(payload)
            json.dumps(result)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Handler %s failed", name)
            self._reply(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "handler failed"})
            return
        self._reply(HTTPStatus.OK, result)

    def log_message(self, format: str, *args: Any) -> None:  # pylint: disable=redefined-builtin
        access_logger.info("%s - %s", self.address_string(), format % args)

    def log_error(self, format: str, *args: Any) -> None:  # pylint: disable=redefined-builtin
        access_logger.warning("%s - %s", self.address_string(), format % args)


def build_server(
    models: Any,
    handlers: Mapping[str, Callable[..., Any]],
    services: Any,
) -> HandlerServer:
    """Bind a :class:`HandlerServer` for `handlers`.

    The address comes from the ``host``/``port`` keys of `services` when it is
    a mapping. Binding errors (e.g. port in use) propagate.
    """
    settings = services if isinstance(services, Mapping) else {}
    host = str(settings.get("host", DEFAULT_HOST))
    port = int(settings.get("port", DEFAULT_PORT))

    dependencies = {"models": models, "services": services}
    injected = {
        name: inject_dependencies(handler, dependencies)
        for name, handler in handlers.items()
    }
    return HandlerServer((host, port), injected)


def serve(
    models: Any,
    handlers: Mapping[str, Callable[..., Any]],
    services: Any,
) -> None:
    """Start serving `handlers` until the process is terminated."""
    settings = services if isinstance(services, Mapping) else {}
    config_runtime_logging(access_log=bool(settings.get("access_log", True)))

    httpd = build_server(models, handlers, services)
    host, port = httpd.server_address[:2]
    logger.info("Serving %d handler(s) on http://%s:%s", len(handlers), host, port)
    with httpd:
        httpd.serve_forever()
