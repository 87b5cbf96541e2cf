"""Allow-list check for user-supplied redirect targets."""

import logging
from collections.abc import Iterable
from urllib.parse import urlsplit

from beershop.core.errors import InvalidUrl, RedirectNotAllowed

logger = logging.getLogger(__name__)


def check_redirect_target(url: str | None, allowed_hosts: Iterable[str]) -> str:
    """
    Return url unchanged if it may be redirected to.

    The target must be https, carry no userinfo, use the default port and
    name a host from allowed_hosts exactly (no suffix or subdomain matching).
    """
    if not url:
        raise InvalidUrl("URL is required")
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise InvalidUrl() from e
    if not parts.scheme or not parts.netloc:
        raise InvalidUrl()

    host = (parts.hostname or "").lower()
    allowed = {h.lower() for h in allowed_hosts}
    if (
        parts.scheme.lower() != "https"
        or parts.username is not None
        or parts.password is not None
        or port not in (None, 443)
        or host not in allowed
    ):
        logger.warning("Redirect refused", extra={"host": host, "scheme": parts.scheme})
        raise RedirectNotAllowed()
    return url
