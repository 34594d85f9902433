"""
End-to-end generation pipeline.

Order of work for one run, all on a single seeded stream:

    vendors -> chunks (POs, PRs, quotations, GRNs, invoices, payments)
    -> contracts and contract links -> role master -> workflow logs
    -> bank change logs -> constraint pass -> PO change logs
    -> anomaly injection -> manifest

PO change logs come after the constraint pass so a vendor amendment names
the vendor the PO ends up with.

Usage:
    config = GeneratorConfig(seed=7, vendor_count=200, po_count=1000)
    result = generate(config)
    run_generation(config, "output/")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .anomalies import inject
from .config import GeneratorConfig
from .generator.chunked import ChunkState, iter_chunks
from .generator.constraints import ValidationResult, apply_constraints, validate_dataset
from .generator.logs import generate_po_change_logs, generate_vendor_bank_change_logs, generate_workflow_logs
from .generator.master import generate_contracts, generate_role_assignments, generate_vendors, link_contracts
from .ids import PAYMENT_WORKFLOW_PREFIX, PO_WORKFLOW_PREFIX, PR_WORKFLOW_PREFIX, SequenceCounters
from .manifest import build_manifest
from .models import AnomalyTruthRecord, P2PDataset
from .rng import SeededRandom
from .writer import write_dataset, write_manifest

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Everything one run produced."""

    dataset: P2PDataset
    truth_records: List[AnomalyTruthRecord]
    manifest: Dict[str, Any]
    validation: ValidationResult
    constraint_summary: Dict[str, int] = field(default_factory=dict)


def build_dataset(config: GeneratorConfig, rng: SeededRandom) -> P2PDataset:
    """Generate the base entity lists in dependency order. No constraints, no anomalies."""
    users = config.user_count
    dataset = P2PDataset()
    counters = SequenceCounters()

    dataset.vendors = generate_vendors(config.vendor_count, rng, config.start_year, config.vendors, users)

    state = ChunkState.start(dataset.vendors, counters)
    for batch in iter_chunks(config, dataset.vendors, rng, state):
        dataset.purchase_orders.extend(batch.purchase_orders)
        dataset.pr_headers.extend(batch.pr_headers)
        dataset.pr_lines.extend(batch.pr_lines)
        dataset.quotations.extend(batch.quotations)
        dataset.grns.extend(batch.grns)
        dataset.invoices.extend(batch.invoices)
        dataset.payments.extend(batch.payments)

    dataset.contracts = generate_contracts(
        dataset.vendors, rng, config.start_year, config.end_year, counters, users,
    )
    linked = link_contracts(dataset.purchase_orders, dataset.contracts, rng)
    logger.debug("Linked %d POs to contracts", linked)

    dataset.role_assignments = generate_role_assignments(
        users, rng, config.start_year, config.end_year, counters,
    )

    dataset.pr_workflow_logs = generate_workflow_logs(
        dataset.pr_headers, "pr", "pr_no", "pr_date", PR_WORKFLOW_PREFIX, rng, counters, users,
    )
    dataset.po_workflow_logs = generate_workflow_logs(
        dataset.purchase_orders, "po", "po_no", "po_date", PO_WORKFLOW_PREFIX, rng, counters, users,
    )
    dataset.payment_workflow_logs = generate_workflow_logs(
        dataset.payments, "payment", "payment_id", "payment_date", PAYMENT_WORKFLOW_PREFIX, rng, counters,
        users, initial_status="pending",
    )

    dataset.vendor_bank_change_logs = generate_vendor_bank_change_logs(dataset.vendors, rng, counters, users)
    return dataset


def add_po_change_logs(dataset: P2PDataset, config: GeneratorConfig, rng: SeededRandom) -> None:
    """Amendment history for the POs as they stand after the constraint pass."""
    dataset.po_change_logs = generate_po_change_logs(
        dataset.purchase_orders, rng, SequenceCounters(), config.user_count, config.vendor_count,
        config.anomalies.po_approval_threshold,
    )


def generate(config: GeneratorConfig, rng: Optional[SeededRandom] = None) -> GenerationResult:
    """
    Run the full pipeline in memory.

    Raises:
        ConfigError: if the configuration is invalid
        GenerationError: if there are no active vendors to order from
    """
    config.validate()
    rng = rng or SeededRandom(config.seed)
    logger.info(
        "Generating seed=%s vendors=%d pos=%d years=%d-%d",
        config.seed, config.vendor_count, config.po_count, config.start_year, config.end_year,
    )

    dataset = build_dataset(config, rng)

    constraint_summary: Dict[str, int] = {}
    if config.constraints.enabled:
        constraint_summary = apply_constraints(dataset, config.constraints, rng)
    add_po_change_logs(dataset, config, rng)

    validation = validate_dataset(dataset, config.constraints)
    if not validation.is_valid:
        logger.info("Validator reported %d violations", validation.total_violations)

    truth_records: List[AnomalyTruthRecord] = []
    if config.enable_anomalies and config.anomalies.active_keys():
        injection = inject(dataset, config.anomalies, rng)
        dataset = injection.dataset
        truth_records = injection.truth_records

    manifest = build_manifest(config, dataset, truth_records)
    logger.info("Generation complete: %s", dataset.counts())

    return GenerationResult(
        dataset=dataset,
        truth_records=truth_records,
        manifest=manifest,
        validation=validation,
        constraint_summary=constraint_summary,
    )


def run_generation(config: GeneratorConfig, output_dir: Union[str, Path]) -> GenerationResult:
    """Generate and write every CSV plus ``manifest.json`` to ``output_dir``."""
    result = generate(config)
    write_dataset(result.dataset, result.truth_records, output_dir)
    write_manifest(result.manifest, output_dir)
    logger.info("Wrote %d tables to %s", len(result.manifest["counts_by_file"]), output_dir)
    return result
