"""Backend-unreachable page — shown when the proxy target does not answer.

Rendered with inline CSS so it works without any assets, and it carries the
client script: the page reloads itself on the next dispatch, which is
usually the moment the backend is back.
"""

from __future__ import annotations

import html

from whisker.server.client import inject_client_script

_ERROR_PAGE = """\
<!DOCTYPE html>
<html lang="en" data-theme="dark">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>whisker — backend unavailable</title>
<style>
*,*::before,*::after{{box-sizing:border-box}}
body{{margin:0;font-family:ui-monospace,SFMono-Regular,Menlo,Monaco,Consolas,monospace;
  background:#1a1a1a;color:#e0e0e0;line-height:1.6}}
.overlay{{max-width:860px;margin:2rem auto;padding:0 1.5rem}}
.error-header{{background:#2d1010;border:1px solid #e74c3c;border-radius:8px;
  padding:1.25rem 1.5rem;margin-bottom:1.5rem}}
.error-header h1{{margin:0;font-size:1rem;color:#e74c3c;font-weight:600}}
.error-header .message{{margin:0.5rem 0 0;font-size:0.95rem;color:#f0a0a0;
  word-break:break-word}}
.hint{{color:#9e9e9e;font-size:0.85rem}}
.actions button{{padding:0.5rem 1.25rem;border-radius:6px;border:1px solid #e74c3c;
  background:#e74c3c;color:#fff;cursor:pointer;font-size:0.85rem;font-family:inherit}}
</style>
</head>
<body>
<div class="overlay">
  <div class="error-header">
    <h1>{error_type}</h1>
    <p class="message">{error_message}</p>
  </div>
  <p class="hint">whisker could not reach <code>{target}</code> for
  <code>{method} {path}</code>. This page reloads on the next change.</p>
  <div class="actions">
    <button onclick="location.reload()">Reload</button>
  </div>
</div>
</body>
</html>
"""


def render_unreachable_page(
    exc: BaseException,
    *,
    target: str,
    method: str,
    path: str,
) -> str:
    """Render the 502 page for a failed upstream request."""
    page = _ERROR_PAGE.format(
        error_type=html.escape(type(exc).__qualname__),
        error_message=html.escape(str(exc) or "connection failed"),
        target=html.escape(target),
        method=html.escape(method),
        path=html.escape(path),
    )
    return inject_client_script(page)
