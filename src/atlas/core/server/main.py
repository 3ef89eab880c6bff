"""Run the Atlas dosing server over streamable HTTP.

Start it with ``atlas-server`` or ``python -m atlas.core.server.main``. The
server has no authentication, so it only listens on loopback addresses unless
``ATLAS_ALLOW_INSECURE_BIND`` is set.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from atlas.core.config.settings import Settings, get_settings
from atlas.core.server.app import create_app

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _ensure_safe_bind(settings: Settings) -> None:
    if settings.atlas_allow_insecure_bind or _is_loopback_host(settings.atlas_host):
        return
    raise RuntimeError(
        f"Atlas will not listen on non-loopback host {settings.atlas_host!r}: dose history "
        "and stock levels would be exposed without authentication. "
        "Set ATLAS_ALLOW_INSECURE_BIND=true to bind anyway."
    )


def run() -> None:
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.atlas_log_level.upper(), logging.INFO))
    _ensure_safe_bind(settings)

    server = create_app(settings_override=settings)
    logger.info(
        "Atlas dosing engine listening on http://%s:%d (default dose time %02d:%02d)",
        settings.atlas_host,
        settings.atlas_port,
        settings.default_dose_hour,
        settings.default_dose_minute,
    )
    server.run(transport="streamable-http", host=settings.atlas_host, port=settings.atlas_port)


if __name__ == "__main__":
    run()
