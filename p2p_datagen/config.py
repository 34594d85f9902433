"""
Configuration settings for the P2P Synthetic Data Generator.

This module contains all configurable parameters for generating synthetic
procure-to-pay documents: dataset size, date range, downstream document
ratios, field plausibility ratios, constraint targets, anomaly percentages
and the scenario policy overlay.

Validation is field-level: ``validate_config`` returns a list of
``{"path": ..., "message": ...}`` entries and ``GeneratorConfig.validate``
raises ConfigError carrying that list.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Union

Seed = Union[int, str]

MAX_PO_COUNT = 200_000
MAX_VENDOR_COUNT = 50_000
MIN_YEAR = 2000
MAX_YEAR = 2100


class ConfigError(ValueError):
    """Invalid generator configuration, with one entry per offending field."""

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        detail = "; ".join(f"{e['path']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid configuration: {detail}")


@dataclass
class VendorProfile:
    """Per-vendor field plausibility ratios (independent Bernoulli trials)."""

    pan_ratio: float = 0.90
    gstin_ratio: float = 0.85
    ifsc_ratio: float = 0.95
    active_ratio: float = 0.90
    bank_change_verified_ratio: float = 0.30
    updated_ratio: float = 0.50
    verified_by_ratio: float = 0.70
    verification_date_ratio: float = 0.60


@dataclass
class TimingConfig:
    """Date windows (days) and amount variance for downstream documents."""

    pr_lead_days: int = 30          # PR precedes PO by 1..pr_lead_days
    quote_lead_days: int = 60       # quotations precede PO by 1..quote_lead_days
    grn_window_days: int = 120      # GRN = PO + 0..window-1
    invoice_window_days: int = 30   # invoice = max(PO, GRN) + 0..window-1
    payment_window_days: int = 60   # payment = invoice + 0..window-1
    grn_variance_pct: float = 2.0
    invoice_variance_pct: float = 3.0
    quote_variance_pct: float = 10.0


@dataclass
class ConstraintConfig:
    """Targets for the post-generation constraint pass and its validator."""

    enabled: bool = True
    top_vendor_ratio: float = 0.20
    top_vendor_po_share: float = 0.40
    goods_po_ratio: float = 0.70
    credit_days: int = 30
    vendor_share_tolerance: float = 0.10


# Percentage knobs, in application order
ANOMALY_KEYS = (
    "missing_pan_pct",
    "duplicate_vendor_pan_pct",
    "duplicate_vendor_bank_pct",
    "vendor_without_approval_pct",
    "bank_change_unverified_pct",
    "inactive_vendor_used_pct",
    "duplicate_invoice_number_pct",
    "invoice_without_grn_pct",
    "payment_before_invoice_pct",
    "pr_without_approval_pct",
    "pr_bypass_pct",
    "pr_duplicate_pct",
    "pr_threshold_violation_pct",
    "po_approval_violation_pct",
    "po_inactive_vendor_pct",
    "po_without_pr_pct",
    "po_threshold_bypass_pct",
    "grn_without_po_pct",
    "grn_delayed_receipt_pct",
    "grn_partial_receipt_pct",
    "invoice_vendor_compliance_pct",
    "invoice_approval_violation_pct",
    "payment_early_discount_pct",
    "payment_approval_violation_pct",
    "payment_high_volume_pct",
)


@dataclass
class AnomalyConfig:
    """
    Anomaly percentages (0-100) plus the thresholds process anomalies use.

    A percentage left as None means that anomaly type is never invoked.
    """

    missing_pan_pct: Optional[float] = None
    duplicate_vendor_pan_pct: Optional[float] = None
    duplicate_vendor_bank_pct: Optional[float] = None
    vendor_without_approval_pct: Optional[float] = None
    bank_change_unverified_pct: Optional[float] = None
    inactive_vendor_used_pct: Optional[float] = None
    duplicate_invoice_number_pct: Optional[float] = None
    invoice_without_grn_pct: Optional[float] = None
    payment_before_invoice_pct: Optional[float] = None
    pr_without_approval_pct: Optional[float] = None
    pr_bypass_pct: Optional[float] = None
    pr_duplicate_pct: Optional[float] = None
    pr_threshold_violation_pct: Optional[float] = None
    po_approval_violation_pct: Optional[float] = None
    po_inactive_vendor_pct: Optional[float] = None
    po_without_pr_pct: Optional[float] = None
    po_threshold_bypass_pct: Optional[float] = None
    grn_without_po_pct: Optional[float] = None
    grn_delayed_receipt_pct: Optional[float] = None
    grn_partial_receipt_pct: Optional[float] = None
    invoice_vendor_compliance_pct: Optional[float] = None
    invoice_approval_violation_pct: Optional[float] = None
    payment_early_discount_pct: Optional[float] = None
    payment_approval_violation_pct: Optional[float] = None
    payment_high_volume_pct: Optional[float] = None

    # Thresholds
    pr_approval_threshold: float = 50_000.0
    po_approval_threshold: float = 50_000.0
    invoice_approval_threshold: float = 50_000.0
    payment_approval_threshold: float = 50_000.0
    grn_delay_days: int = 90
    near_threshold_ratio: float = 0.90
    early_discount_rate: float = 2.0
    high_volume_percentile: float = 90.0

    def get(self, key: str) -> Optional[float]:
        if key not in ANOMALY_KEYS:
            raise KeyError(f"Unknown anomaly key: {key}")
        return getattr(self, key)

    def update(self, values: Dict[str, Any]) -> "AnomalyConfig":
        """Set percentages and thresholds from a mapping; unknown keys raise."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                raise KeyError(f"Unknown anomaly setting: {key}")
            setattr(self, key, value)
        return self

    def active_keys(self) -> List[str]:
        return [key for key in ANOMALY_KEYS if getattr(self, key)]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PolicyConfig:
    """
    Named policy thresholds from the scenario overlay.

    These are descriptive metadata: they are echoed into the manifest and
    never change what gets generated.
    """

    goods_require_grn: Optional[bool] = None
    service_allow_without_grn: Optional[bool] = None
    allow_service_po_without_pr: Optional[bool] = None
    require_pr_for_goods: Optional[bool] = None
    approval_threshold_amount: Optional[float] = None
    multi_level_approval_threshold: Optional[float] = None
    executive_approval_threshold: Optional[float] = None
    tender_threshold: Optional[float] = None
    single_quote_threshold: Optional[float] = None
    three_quote_threshold: Optional[float] = None
    require_pan_for_vendor: Optional[bool] = None
    require_gstin_for_vendor: Optional[bool] = None
    require_bank_verification: Optional[bool] = None
    payment_terms_days: Optional[int] = None
    early_payment_discount_pct: Optional[float] = None
    invoice_matching_required: Optional[bool] = None
    tolerance_amount: Optional[float] = None
    max_po_amount: Optional[float] = None
    require_quality_check: Optional[bool] = None
    require_delivery_note: Optional[bool] = None

    def update(self, values: Dict[str, Any]) -> "PolicyConfig":
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                raise KeyError(f"Unknown policy setting: {key}")
            setattr(self, key, value)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GeneratorConfig:
    """Main configuration for the synthetic data generator."""

    # Random seed for reproducibility (int or non-empty string)
    seed: Seed = 42

    # Output counts
    vendor_count: int = 1000
    po_count: int = 5000

    # Date range (inclusive calendar years)
    start_year: int = 2024
    end_year: int = 2025

    # Downstream document ratios over eligible upstream records
    grn_ratio: float = 0.80
    invoice_ratio: float = 0.90
    payment_ratio: float = 0.85

    # POs per chunk; bounds memory, not output shape
    chunk_size: int = 10_000

    # Scenario overlay
    pack_name: Optional[str] = None
    scenario_id: Optional[str] = None

    enable_anomalies: bool = True

    vendors: VendorProfile = field(default_factory=VendorProfile)
    timing: TimingConfig = field(default_factory=TimingConfig)
    constraints: ConstraintConfig = field(default_factory=ConstraintConfig)
    anomalies: AnomalyConfig = field(default_factory=AnomalyConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)

    @property
    def user_count(self) -> int:
        """Size of the USERnnnnnn pool used for actors and role master data."""
        return max(1, int(self.vendor_count * 0.5))

    @property
    def years(self) -> List[int]:
        return list(range(self.start_year, self.end_year + 1))

    def validate(self, enforce_limits: bool = False) -> "GeneratorConfig":
        errors = validate_config(self, enforce_limits=enforce_limits)
        if errors:
            raise ConfigError(errors)
        return self


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: GeneratorConfig, enforce_limits: bool = False) -> List[Dict[str, str]]:
    """
    Collect field-level configuration errors.

    With ``enforce_limits`` the boundary rules also apply: upper bounds on
    counts and the 2000-2100 year window.
    """
    errors: List[Dict[str, str]] = []

    def error(path: str, message: str) -> None:
        errors.append({"path": path, "message": message})

    seed = config.seed
    if isinstance(seed, str):
        if not seed.strip():
            error("seed", "must be a non-empty string or an integer")
    elif not _is_int(seed):
        error("seed", "must be a non-empty string or an integer")

    for name, limit in (("vendor_count", MAX_VENDOR_COUNT), ("po_count", MAX_PO_COUNT)):
        value = getattr(config, name)
        if not _is_int(value) or value <= 0:
            error(name, "must be a positive integer")
        elif enforce_limits and value > limit:
            error(name, f"must be at most {limit}")

    if not _is_int(config.chunk_size) or config.chunk_size <= 0:
        error("chunk_size", "must be a positive integer")

    years_ok = True
    for name in ("start_year", "end_year"):
        value = getattr(config, name)
        if not _is_int(value):
            error(name, "must be an integer")
            years_ok = False
        elif enforce_limits and not MIN_YEAR <= value <= MAX_YEAR:
            error(name, f"must be between {MIN_YEAR} and {MAX_YEAR}")
    if years_ok and config.end_year < config.start_year:
        error("end_year", "must be greater than or equal to start_year")

    for name in ("grn_ratio", "invoice_ratio", "payment_ratio"):
        value = getattr(config, name)
        if not _is_number(value) or not 0.0 <= value <= 1.0:
            error(name, "must be a number between 0 and 1")

    for f in fields(config.vendors):
        value = getattr(config.vendors, f.name)
        if not _is_number(value) or not 0.0 <= value <= 1.0:
            error(f"vendors.{f.name}", "must be a number between 0 and 1")

    for name in ("top_vendor_ratio", "top_vendor_po_share", "goods_po_ratio", "vendor_share_tolerance"):
        value = getattr(config.constraints, name)
        if not _is_number(value) or not 0.0 <= value <= 1.0:
            error(f"constraints.{name}", "must be a number between 0 and 1")
    if not _is_int(config.constraints.credit_days) or config.constraints.credit_days < 0:
        error("constraints.credit_days", "must be a non-negative integer")

    for name in ("pr_lead_days", "quote_lead_days", "grn_window_days", "invoice_window_days", "payment_window_days"):
        value = getattr(config.timing, name)
        if not _is_int(value) or value <= 0:
            error(f"timing.{name}", "must be a positive integer")

    for key in ANOMALY_KEYS:
        value = getattr(config.anomalies, key)
        if value is None:
            continue
        if not _is_number(value) or not 0.0 <= value <= 100.0:
            error(f"anomalies.{key}", "must be a percentage between 0 and 100")

    if config.pack_name is not None or config.scenario_id is not None:
        # Imported here: the catalog imports this module
        from .scenarios import PACKS, find_scenario

        if config.pack_name is not None and config.pack_name not in PACKS:
            error("pack_name", f"unknown pack '{config.pack_name}'")
        if config.scenario_id is not None and find_scenario(config.scenario_id) is None:
            error("scenario_id", f"unknown scenario '{config.scenario_id}'")

    return errors


# Dataset sizes for the CLI --preset option. Each preset stays inside the
# boundary limits enforced by validate_config(enforce_limits=True).
PRESETS = {
    "small": {
        "vendor_count": 100,
        "po_count": 500,
    },
    "medium": {
        "vendor_count": 1000,
        "po_count": 5000,
    },
    "large": {
        "vendor_count": 5000,
        "po_count": 50_000,
    },
    "xlarge": {
        "vendor_count": 20_000,
        "po_count": 200_000,
    },
}


def apply_preset(config: GeneratorConfig, preset_name: str) -> GeneratorConfig:
    """Set vendor and PO counts from a named dataset size. Other fields are kept."""
    try:
        sizes = PRESETS[preset_name]
    except KeyError:
        raise ValueError(
            f"Unknown dataset size '{preset_name}'; choose one of: {', '.join(PRESETS)}"
        ) from None

    config.vendor_count = sizes["vendor_count"]
    config.po_count = sizes["po_count"]
    return config
