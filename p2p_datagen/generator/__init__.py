"""Entity generators, chunked orchestration and the constraint pass."""

from .chunked import ChunkBatch, ChunkState, chunk_count, iter_chunks
from .constraints import ValidationResult, apply_constraints, format_validation_results, validate_dataset
from .logs import generate_po_change_logs, generate_vendor_bank_change_logs, generate_workflow_logs
from .master import generate_contracts, generate_role_assignments, generate_vendors, link_contracts
from .procurement import GenerationError

__all__ = [
    "ChunkBatch",
    "ChunkState",
    "chunk_count",
    "iter_chunks",
    "ValidationResult",
    "apply_constraints",
    "format_validation_results",
    "validate_dataset",
    "generate_po_change_logs",
    "generate_vendor_bank_change_logs",
    "generate_workflow_logs",
    "generate_contracts",
    "generate_role_assignments",
    "generate_vendors",
    "link_contracts",
    "GenerationError",
]
