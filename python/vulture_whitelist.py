"""Vulture whitelist: references that appear unused but are called dynamically.

Vulture scans for unreachable code.  Items listed here are known false
positives: pytest fixtures consumed via dependency injection, dataclass
lifecycle hooks, enum members only reached by value lookup, etc.

Usage:
    cd python && uv run vulture retiremint tests vulture_whitelist.py
"""

# ── Pytest fixtures (injected by pytest, never called directly) ──
from tests.conftest import investments  # noqa: F401
from tests.conftest import investments_by_id  # noqa: F401
from tests.conftest import investments_by_name  # noqa: F401
from tests.conftest import reproducible_rng  # noqa: F401
from tests.conftest import sample_scenario  # noqa: F401

# ── Dataclass lifecycle hooks (called by @dataclass, not user code) ──
from retiremint.model import Investment  # noqa: F401

Investment.__post_init__  # noqa: B018

# ── Public API used by embedding applications ──
from retiremint.log_config import setup  # noqa: F401
from retiremint.config import ResolutionConfig  # noqa: F401

ResolutionConfig.from_env  # noqa: B018
