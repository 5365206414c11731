"""User-editable overrides for rendered image and logo storage directories."""

from __future__ import annotations

from typing import Optional

# Set these to absolute paths (e.g. "/var/lib/led-ticker/images") to force the
# application to persist files there. Leave them as ``None`` to let the
# auto-detection logic choose a writable location.
IMAGES_DIR: Optional[str] = None
LOGOS_DIR: Optional[str] = None
