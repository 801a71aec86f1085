"""Browser client — the script that listens for dispatch commands.

Served at ``/__whisker/client.js`` and referenced from every proxied HTML
page.  Connects to the dispatch endpoint over SSE and:

1. ``whisker:dispatch`` with ``kind: "full"``   -> reloads the page
2. ``whisker:dispatch`` with ``kind: "scoped"`` -> re-fetches matching
   stylesheets (and images) in place, cache-busted
3. ``whisker:notify``                           -> shows a short notice
"""

from __future__ import annotations

import re

CLIENT_SCRIPT_PATH = "/__whisker/client.js"

SCRIPT_TAG = f'<script async data-whisker src="{CLIENT_SCRIPT_PATH}"></script>\n'

CLIENT_SCRIPT = """\
(function() {
  if (window.__whisker) return;
  window.__whisker = true;
  var src = new EventSource('/__whisker/events');
  function toRegExp(glob) {
    var re = glob.replace(/[.+^${}()|[\\]\\\\]/g, '\\\\$&')
      .replace(/\\*\\*/g, '\\u0000').replace(/\\*/g, '[^/]*')
      .replace(/\\u0000/g, '.*').replace(/\\?/g, '[^/]');
    return new RegExp('(^|/)' + re + '$');
  }
  function bust(url) {
    var u = new URL(url, location.href);
    u.searchParams.set('whisker', Date.now());
    return u.href;
  }
  function inject(scope) {
    var re = toRegExp(scope), hits = 0;
    document.querySelectorAll('link[rel~="stylesheet"][href]').forEach(function(el) {
      if (re.test(new URL(el.href, location.href).pathname)) { el.href = bust(el.href); hits++; }
    });
    document.querySelectorAll('img[src]').forEach(function(el) {
      if (re.test(new URL(el.src, location.href).pathname)) { el.src = bust(el.src); hits++; }
    });
    return hits;
  }
  src.addEventListener('whisker:dispatch', function(e) {
    var cmd = JSON.parse(e.data);
    if (cmd.kind === 'scoped' && cmd.scope) { inject(cmd.scope); return; }
    location.reload();
  });
  src.addEventListener('whisker:notify', function(e) {
    var d = JSON.parse(e.data), el = document.createElement('div');
    el.setAttribute('data-whisker-notice', '');
    el.style.cssText = 'position:fixed;top:0;right:0;z-index:99999;padding:0.5rem 1rem;'
      + 'background:#1d1d1d;color:#f0f0f0;font:13px ui-monospace,monospace;'
      + 'border-bottom-left-radius:6px;opacity:0.9';
    el.textContent = d.message;
    document.body.appendChild(el);
    setTimeout(function() { el.remove(); }, 2500);
  });
})();
"""

_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)
_HTML_CLOSE = re.compile(r"</html\s*>", re.IGNORECASE)


def inject_client_script(body: str) -> str:
    """Insert the client script tag into an HTML document.

    Injects just before ``</body>`` (or ``</html>``), appending if neither
    tag exists.  Documents that already carry the tag are left unchanged.
    """
    if "data-whisker" in body:
        return body
    for pattern in (_BODY_CLOSE, _HTML_CLOSE):
        match = pattern.search(body)
        if match is not None:
            return body[: match.start()] + SCRIPT_TAG + body[match.start() :]
    return body + SCRIPT_TAG
