"""JSON export for scenarios and resolved plans.

Writes the exchange form of a scenario, optionally together with the
timings of one or more resolved trial plans, plus export metadata.

"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import numpy as np

from retiremint.exchange.scenario_export import scenario_to_exchange
from retiremint.model import Scenario
from retiremint.plan.builder import ResolvedPlan


class _ScenarioEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy types and datetimes."""

    def default(self, o: Any) -> Any:
        """Convert non-serializable types to JSON-safe values."""
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, np.bool_):
            return bool(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def export_scenario_json(
    scenario: Scenario,
    plans: Sequence[ResolvedPlan] | None = None,
    output_path: str | None = None,
) -> str:
    """Export a scenario (and optionally trial plans) to JSON.

    Args:
        scenario: Scenario to export.
        plans: Resolved plans; each is written as a list of event timings.
        output_path: File path to write. If None, returns JSON string.

    Returns:
        JSON string, or file path if output_path given.

    """
    now = datetime.now(tz=UTC).isoformat()

    export_data: dict[str, Any] = {
        "metadata": {
            "export_date": now,
            "format_version": "1.0",
            "source": "Retiremint",
        },
        "scenario": scenario_to_exchange(scenario),
    }

    if plans is not None:
        export_data["plans"] = [plan.to_frame().to_dict(orient="records") for plan in plans]
        export_data["metadata"]["plans_count"] = len(plans)

    content = json.dumps(export_data, cls=_ScenarioEncoder, indent=2)

    if output_path:
        Path(output_path).write_text(content, encoding="utf-8")
        return output_path
    return content
