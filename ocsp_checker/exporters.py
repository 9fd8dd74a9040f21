import csv
import json
from typing import Any, Dict, List, Optional
from datetime import datetime

from .models import ScenarioResult


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _result_row(r: ScenarioResult) -> Dict[str, Any]:
    verdict = r.verdict
    return {
        "scenario": r.scenario,
        "target": r.target,
        "status": verdict.status.value if verdict else "ERROR",
        "revocation_reason": verdict.revocation_reason if verdict else None,
        "reason_label": verdict.reason_label if verdict else None,
        "revocation_time": _iso(verdict.revocation_time) if verdict else None,
        "this_update": _iso(verdict.this_update) if verdict else None,
        "next_update": _iso(verdict.next_update) if verdict else None,
        "error": r.error,
        "started_at": _iso(r.started_at),
        "ended_at": _iso(r.ended_at),
        "duration_ms": r.duration_ms,
    }


def export_results_json(results: List[ScenarioResult], path: str) -> None:
    payload = [_result_row(r) for r in results]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def export_results_csv(results: List[ScenarioResult], path: str) -> None:
    cols = ["scenario", "target", "status", "reason_label", "revocation_time",
            "this_update", "next_update", "error", "duration_ms"]
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        w.writeheader()
        for r in results:
            w.writerow(_result_row(r))
