"""HTTP surface — whisker's endpoints, the browser client and the proxy frontend."""

from whisker.server.client import CLIENT_SCRIPT, CLIENT_SCRIPT_PATH, inject_client_script
from whisker.server.proxy import INTERNAL_PREFIX, ProxyMiddleware
from whisker.server.routes import EVENTS_ENDPOINT, STATS_ENDPOINT, WhiskerRouter

__all__ = [
    "CLIENT_SCRIPT",
    "CLIENT_SCRIPT_PATH",
    "EVENTS_ENDPOINT",
    "INTERNAL_PREFIX",
    "STATS_ENDPOINT",
    "ProxyMiddleware",
    "WhiskerRouter",
    "inject_client_script",
]
