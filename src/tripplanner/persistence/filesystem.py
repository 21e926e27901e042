"""Run artifacts for planning calls: one directory per plan under ``<data_root>/outputs``."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from ..config import settings
from ..services.outputs.planning_formatter import planning_result_to_csv, planning_result_to_json
from ..services.routing.models import PlanningResult

logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "summary.json"
STOPS_FILENAME = "stops.csv"


class FileStorage:
    """Writes each planning result as a JSON summary plus a per-stop CSV."""

    def __init__(self, root: Path | None = None) -> None:
        self.output_root = (root or settings.data_root).resolve() / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "plan") -> Path:
        # Microseconds keep concurrent requests from colliding.
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{prefix}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def save_plan(self, result: PlanningResult, prefix: str = "plan") -> Path:
        """Store ``result`` in a fresh run directory and return that directory."""
        run_dir = self.make_run_directory(prefix=prefix)
        summary = planning_result_to_json(result)
        (run_dir / SUMMARY_FILENAME).write_text(
            json.dumps(summary, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        with (run_dir / STOPS_FILENAME).open("w", encoding="utf-8", newline="") as handle:
            handle.write(planning_result_to_csv(result))
        logger.info(f"Saved plan with {len(result.stop_results)} stops to {run_dir}")
        return run_dir

    def load_summary(self, run_dir: Path) -> dict:
        with (run_dir / SUMMARY_FILENAME).open("r", encoding="utf-8") as handle:
            return json.load(handle)
