"""One-time licensing notice, logged on first use of the CLI."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)

LICENSE_NOTICE = (
    "convex-monitor is licensed under the Business Source License 1.1 (BSL 1.1). "
    "Production use by for-profit organizations requires a commercial license."
)

_emitted = False


def emit_license_notice() -> bool:
    """Log the notice once per process. Returns True if this call logged it."""
    global _emitted
    if _emitted:
        return False
    _emitted = True
    log.warning(LICENSE_NOTICE)
    return True
