"""Integration tests for the collaborator server over a real socket."""

import json
import logging
import threading
import urllib.error
import urllib.request

import pytest

from miniserver.logging import ACCESS_LOGGER
from miniserver.server import build_server, inject_dependencies

# pylint: disable=redefined-outer-name
# pylint: disable=magic-value-comparison


def ping(payload):
    """Echo the payload."""
    return {"pong": payload}


def whoami(payload, services, models):  # pylint: disable=unused-argument
    """Return values injected by the server."""
    return {"name": services["name"], "models": sorted(models)}


def explode(payload):
    """Always fail."""
    raise RuntimeError(payload)


@pytest.fixture
def base_url():
    """Serve three handlers on an ephemeral port for the duration of a test."""
    httpd = build_server(
        {"user": {}},
        {"ping": ping, "whoami": whoami, "explode": explode},
        {"name": "demo", "host": "127.0.0.1", "port": 0},
    )
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    host, port = httpd.server_address[:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)


def _request(url, body=None, method="POST"):
    data = body if isinstance(body, bytes) or body is None else json.dumps(body).encode()
    req = urllib.request.Request(url, data=data, method=method)
    try:
        with urllib.request.urlopen(req, timeout=5) as resp:
            return resp.status, json.loads(resp.read())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read())


def test_get_root_lists_handlers(base_url):
    """GET / returns the sorted handler identifiers."""
    assert _request(f"{base_url}/", method="GET") == (
        200,
        {"handlers": ["explode", "ping", "whoami"]},
    )


def test_post_dispatches_payload(base_url):
    """The JSON body reaches the handler and its result is returned."""
    assert _request(f"{base_url}/ping", {"x": 1}) == (200, {"pong": {"x": 1}})


def test_empty_body_is_none(base_url):
    """A request without a body passes None."""
    assert _request(f"{base_url}/ping") == (200, {"pong": None})


def test_models_and_services_are_injected(base_url):
    """Handlers declaring `services`/`models` receive them."""
    assert _request(f"{base_url}/whoami", {}) == (
        200,
        {"name": "demo", "models": ["user"]},
    )


@pytest.mark.parametrize(
    ("path", "body", "status"),
    [("/nope", {}, 404), ("/ping", b"{not json", 400), ("/explode", "x", 500)],
)
def test_error_statuses(base_url, path, body, status):
    """Unknown handlers, bad bodies and failing handlers map to HTTP errors."""
    code, payload = _request(f"{base_url}{path}", body)
    assert code == status
    assert "error" in payload


def test_inject_dependencies_only_passes_declared_names():
    """Undeclared dependencies are not passed."""
    injected = inject_dependencies(ping, {"services": {}, "models": None})
    assert injected("hi") == {"pong": "hi"}


def test_bind_failure_propagates():
    """A port that cannot be bound fails at startup."""
    with pytest.raises(OverflowError):
        build_server(None, {}, {"port": 70000})


def test_requests_are_logged_on_the_access_logger(base_url, caplog):
    """One INFO line per request goes to the access logger, not the server's."""
    with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
        _request(base_url + "/ping", {"n": 1})

    access = [r for r in caplog.records if r.name == ACCESS_LOGGER]
    assert len(access) == 1
    assert access[0].levelno == logging.INFO
    assert '"POST /ping HTTP/1.1" 200' in access[0].getMessage()
