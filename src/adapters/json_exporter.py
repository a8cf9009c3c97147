"""JSON export of the computed dashboard.

Why JSON:
- Interoperability with spreadsheets, notebooks and other pipelines.
- Keeps the aggregated numbers without depending on the text/HTML renders.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from core.domain.models import SectionReport
from core.domain.window import TimeWindow


def build_snapshot_payload(
    reports: Sequence[SectionReport],
    window: TimeWindow,
    generated_at: str,
) -> dict[str, object]:
    return {
        "window": window.value,
        "generated_at": generated_at,
        "sections": [report.model_dump(mode="json") for report in reports],
    }


def export_snapshot_json(
    *,
    reports: Sequence[SectionReport],
    window: TimeWindow,
    generated_at: str,
    output_path: Path,
) -> Path:
    """Export the section reports to UTF-8 JSON with a stable layout."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = build_snapshot_payload(reports, window, generated_at)
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
