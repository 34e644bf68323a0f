"""
HTML snippets rendered through ``st.markdown(..., unsafe_allow_html=True)``.

Anything user supplied must pass through :func:`escape_html` before it is
placed in markup here.
"""

from __future__ import annotations

import json
from typing import Any


STYLES = """
<style>
/* Flash message styling with fade-out animation */
.flash-message {
    padding: 0.9rem 1.2rem;
    border-radius: 0.75rem;
    margin-bottom: 1.5rem;
    font-weight: 500;
    animation: flash-fade 3s forwards;
}
.flash-success {
    background-color: rgba(46, 204, 113, 0.2);
    color: #2ecc71;
}
.flash-error {
    background-color: rgba(231, 76, 60, 0.2);
    color: #e74c3c;
}
.flash-info {
    background-color: rgba(52, 152, 219, 0.2);
    color: #3498db;
}
@keyframes flash-fade {
    0%, 90% { opacity: 1; }
    100% { opacity: 0; display: none; }
}

.pill {
    display: inline-block;
    padding: 0.2rem 0.7rem;
    border-radius: 999px;
    background: rgba(52, 152, 219, 0.15);
}
.eyebrow {
    text-transform: uppercase;
    letter-spacing: 0.08em;
    font-size: 0.8rem;
    opacity: 0.7;
}
.note-title {
    margin: 0;
}
</style>
"""

FLASH_CLASSES = {
    "success": "flash-success",
    "error": "flash-error",
    "warning": "flash-error",
    "info": "flash-info",
}


def escape_html(text: Any) -> str:
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def flash_html(level: str, message: str) -> str:
    css_class = FLASH_CLASSES.get(level, "flash-info")
    return f"<div class='flash-message {css_class}'>{escape_html(message)}</div>"


def pill_html(text: str) -> str:
    return f"<p class='pill'>{escape_html(text)}</p>"


def eyebrow_html(text: str) -> str:
    return f"<p class='eyebrow'>{escape_html(text)}</p>"


def note_title_html(title: str) -> str:
    return f"<h4 class='note-title'>{escape_html(title)}</h4>"


# Streamlit cannot see URL fragments server side, so emailed links of the
# form "#verify-email?token=..." are rewritten to "?route=verify-email&token=...".
HASH_BRIDGE_SCRIPT = """
<script>
(function () {
  var loc = window.location;
  var hash = loc.hash || "";
  if (hash.length < 2) { return; }
  var raw = hash.slice(1);
  var parts = raw.split("?");
  var params = new URLSearchParams(parts[1] || "");
  params.set("route", parts[0] || "home");
  loc.replace(loc.pathname + "?" + params.toString());
})();
</script>
"""


SESSION_COOKIE_MAX_AGE = 30 * 24 * 60 * 60


def session_cookie_script(name: str, value: str, max_age: int = SESSION_COOKIE_MAX_AGE) -> str:
    """Script that stores a first-party cookie, or clears it when ``value`` is empty."""
    cookie = f"{name}={value}; path=/; SameSite=Lax; max-age={max_age if value else 0}"
    return (
        "<script>(function () {"
        f"var cookie = {json.dumps(cookie)};"
        "if (window.location.protocol === \"https:\") { cookie += \"; Secure\"; }"
        "document.cookie = cookie;"
        "})();</script>"
    )


__all__ = [
    "STYLES",
    "HASH_BRIDGE_SCRIPT",
    "session_cookie_script",
    "escape_html",
    "flash_html",
    "pill_html",
    "eyebrow_html",
    "note_title_html",
]
