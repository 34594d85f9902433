"""
Run manifest: what was generated, with which settings, and how many
anomalies a detector should expect per test step.

The manifest carries no timestamps, so two runs with the same seed and
configuration produce identical manifests.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List

from .config import ANOMALY_KEYS, GeneratorConfig
from .models import AnomalyTruthRecord, P2PDataset

TRUTH_FILE = "anomaly_truth.csv"
MANIFEST_FILE = "manifest.json"


def csv_name(stem: str) -> str:
    return f"{stem}.csv"


def expected_exception_counts(truth_records: List[AnomalyTruthRecord]) -> Dict[str, int]:
    """Truth records per test-step id, sorted by id."""
    counts = Counter(record.test_step_id for record in truth_records)
    return {step_id: counts[step_id] for step_id in sorted(counts)}


def build_manifest(
    config: GeneratorConfig,
    dataset: P2PDataset,
    truth_records: List[AnomalyTruthRecord],
) -> Dict[str, Any]:
    counts_by_file = {csv_name(stem): count for stem, count in dataset.counts().items()}
    counts_by_file[TRUTH_FILE] = len(truth_records)

    return {
        "seed": config.seed,
        "date_range": {
            "start_year": config.start_year,
            "end_year": config.end_year,
        },
        "pack_name": config.pack_name,
        "scenario_id": config.scenario_id,
        "counts_by_file": counts_by_file,
        "anomaly_config": {key: config.anomalies.get(key) for key in ANOMALY_KEYS},
        "policy_config": config.policy.to_dict(),
        "expected_exception_counts_by_test_step": expected_exception_counts(truth_records),
    }
