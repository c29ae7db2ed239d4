from __future__ import annotations

from collections import defaultdict, deque
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))


@pytest.fixture(autouse=True)
def _open_middleware(monkeypatch):
    """Disable auth and start every test with empty rate limit buckets."""

    from backend.app.core import observability as obs

    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", None, raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_buckets", defaultdict(deque), raising=False)
