"""Serverless entrypoint; the platform imports ``app`` from here."""

import sys
from pathlib import Path

_SRC_DIR = str(Path(__file__).resolve().parent.parent / "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)

from ngx_transform.api.asgi import app  # noqa: E402

__all__ = ["app"]
