"""
Chunked generation of the PO -> GRN -> invoice -> payment chain.

Vendors are generated up front. Each chunk then produces its own slice of
POs with their PRs and quotations, and GRNs, invoices and payments derived
only from that slice: an invoice in chunk K always references a PO from
chunk K. Sequence counters and lookup indexes live in ChunkState and carry
over from one chunk to the next, so chunks must be consumed in order.

Usage:
    state = ChunkState.start(vendors)
    for batch in iter_chunks(config, vendors, rng, state):
        sink.write(batch)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from ..config import GeneratorConfig
from ..ids import SequenceCounters
from ..models import GoodsReceipt, Invoice, Payment, PRHeader, PRLine, PurchaseOrder, Quotation, Vendor
from ..rng import SeededRandom
from .fulfillment import generate_grns, generate_invoices, generate_payments
from .procurement import generate_purchase_orders, generate_purchase_requisitions, generate_quotations

logger = logging.getLogger(__name__)


@dataclass
class ChunkState:
    """Running state threaded from one chunk to the next."""

    counters: SequenceCounters
    vendor_index: Dict[str, Vendor]
    po_index: Dict[str, PurchaseOrder] = field(default_factory=dict)
    invoice_index: Dict[str, Invoice] = field(default_factory=dict)
    pos_generated: int = 0

    @classmethod
    def start(cls, vendors: List[Vendor], counters: Optional[SequenceCounters] = None) -> "ChunkState":
        return cls(
            counters=counters if counters is not None else SequenceCounters(),
            vendor_index={v.vendor_id: v for v in vendors},
        )


@dataclass
class ChunkBatch:
    """Documents produced by one chunk."""

    chunk_index: int
    is_last_chunk: bool
    purchase_orders: List[PurchaseOrder]
    pr_headers: List[PRHeader]
    pr_lines: List[PRLine]
    quotations: List[Quotation]
    grns: List[GoodsReceipt]
    invoices: List[Invoice]
    payments: List[Payment]


def chunk_count(po_count: int, chunk_size: int) -> int:
    return max(1, math.ceil(po_count / chunk_size))


def iter_chunks(
    config: GeneratorConfig,
    vendors: List[Vendor],
    rng: SeededRandom,
    state: ChunkState,
) -> Iterator[ChunkBatch]:
    """Yield chunk batches until ``config.po_count`` POs have been generated."""
    total_chunks = chunk_count(config.po_count, config.chunk_size)
    users = config.user_count

    for index in range(total_chunks):
        size = max(0, min(config.chunk_size, config.po_count - state.pos_generated))

        purchase_orders = generate_purchase_orders(
            size, vendors, rng, config.start_year, config.end_year, state.counters, users,
        )
        pr_headers, pr_lines = generate_purchase_requisitions(
            purchase_orders, rng, config.start_year, config.end_year, state.counters, config.timing, users,
        )
        quotations = generate_quotations(purchase_orders, vendors, rng, state.counters, config.timing, users)
        grns = generate_grns(purchase_orders, rng, config.grn_ratio, state.counters, config.timing, users)
        invoices = generate_invoices(
            purchase_orders, grns, rng, config.invoice_ratio, state.counters, config.timing,
            config.constraints.credit_days, users,
        )
        payments = generate_payments(
            invoices, state.vendor_index, rng, config.payment_ratio, state.counters, config.timing, users,
        )

        state.po_index.update((po.po_no, po) for po in purchase_orders)
        state.invoice_index.update((inv.invoice_no, inv) for inv in invoices)
        state.pos_generated += len(purchase_orders)

        logger.info(
            "Chunk %d/%d: %d POs, %d GRNs, %d invoices, %d payments",
            index + 1, total_chunks, len(purchase_orders), len(grns), len(invoices), len(payments),
        )

        yield ChunkBatch(
            chunk_index=index,
            is_last_chunk=index == total_chunks - 1,
            purchase_orders=purchase_orders,
            pr_headers=pr_headers,
            pr_lines=pr_lines,
            quotations=quotations,
            grns=grns,
            invoices=invoices,
            payments=payments,
        )
