"""Security helpers for response headers, redirects, free-text input and password policy."""
import html
import re
from urllib.parse import urlparse, urljoin

import bleach
from flask import request


def apply_security_headers(response, force_https: bool = False):
    """Apply security headers while allowing geolocation and the map link-outs."""
    csp = (
        "default-src 'self'; "
        "style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; "
        "img-src 'self' data: blob:; "
        "connect-src 'self'; "
        "form-action 'self'; "
        "frame-ancestors 'self';"
    )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    # Report form needs the browser's location; other sensors stay off.
    response.headers.setdefault("Permissions-Policy", "geolocation=(self), microphone=(), camera=()")
    if force_https or request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
    return response


def is_safe_redirect_url(target: str) -> bool:
    """Validate redirect targets to prevent open redirect attacks."""
    if not target:
        return False
    ref_url = urlparse(request.host_url)
    test_url = urlparse(urljoin(request.host_url, target))
    return test_url.scheme in ("http", "https") and ref_url.netloc == test_url.netloc


def password_meets_policy(password: str) -> tuple[bool, str | None]:
    if len(password) < 10:
        return False, "Password must be at least 10 characters long."
    if password.lower() == password or password.upper() == password:
        return False, "Use a mix of upper and lower case characters."
    if not any(c.isdigit() for c in password):
        return False, "Include at least one digit."
    return True, None


def strip_markup(value: str | None) -> str:
    """Plain text for storage: tags removed, whitespace collapsed. Templates escape on output."""
    if not value:
        return ""
    text_only = bleach.clean(str(value), tags=[], attributes={}, strip=True)
    return re.sub(r"[ \t]+", " ", html.unescape(text_only)).strip()
