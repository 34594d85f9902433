"""
Master data generation: vendors, contracts and role assignments.

Vendor fields follow Indian P2P conventions (PAN, GSTIN, IFSC). Optional
fields are included per vendor by independent trials against the ratios
in VendorProfile.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, List

from ..config import VendorProfile
from ..ids import (
    CONTRACT_NUMBER_PREFIX,
    CONTRACT_PREFIX,
    ROLE_PREFIX,
    SequenceCounters,
    contract_number,
    number_by_date,
    role_assignment_id,
    user_id,
    vendor_id,
)
from ..models import CONTRACT_TYPES, Contract, PurchaseOrder, RoleAssignment, Vendor
from ..rng import SeededRandom

logger = logging.getLogger(__name__)


# =============================================================================
# REFERENCE DATA
# =============================================================================

# Bank name -> IFSC bank code
BANKS = {
    "State Bank of India": "SBIN",
    "HDFC Bank": "HDFC",
    "ICICI Bank": "ICIC",
    "Axis Bank": "UTIB",
    "Punjab National Bank": "PUNB",
    "Bank of Baroda": "BARB",
    "Canara Bank": "CNRB",
    "Kotak Mahindra Bank": "KKBK",
    "Union Bank of India": "UBIN",
    "IndusInd Bank": "INDB",
}

DEPARTMENTS = [
    "Operations", "Finance", "IT", "Administration", "Maintenance",
    "Production", "Logistics", "Marketing", "HR", "Quality",
]

ROLES = [
    "requester", "buyer", "approver", "finance_approver",
    "ap_clerk", "treasury", "vendor_admin", "auditor",
]

ALNUM = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def random_user(rng: SeededRandom, user_count: int) -> str:
    return user_id(rng.randint(1, user_count))


def generate_pan(rng: SeededRandom) -> str:
    """PAN: 5 letters, 4 digits, 1 letter."""
    return rng.letters(5) + rng.digits(4) + rng.letters(1)


def generate_gstin(rng: SeededRandom, pan: str) -> str:
    """GSTIN: state code, PAN, entity digit, 'Z', check character."""
    state = f"{rng.randint(1, 37):02d}"
    entity = str(rng.randint(1, 9))
    return f"{state}{pan}{entity}Z{rng.choice(ALNUM)}"


def generate_ifsc(rng: SeededRandom, bank_code: str) -> str:
    return f"{bank_code}0{rng.letters(6, ALNUM)}"


def generate_bank_account(rng: SeededRandom) -> str:
    return str(rng.randint(1, 9)) + rng.digits(9)


def generate_phone(rng: SeededRandom) -> str:
    return f"+91{rng.randint(6, 9)}{rng.digits(9)}"


# =============================================================================
# VENDORS
# =============================================================================

def generate_vendors(
    count: int,
    rng: SeededRandom,
    start_year: int,
    profile: VendorProfile,
    user_count: int,
) -> List[Vendor]:
    """Generate ``count`` vendors created during ``start_year``."""
    base = date(start_year, 1, 1)
    vendors = []

    for i in range(count):
        created = base + timedelta(days=int(rng.next() * 365))
        name = rng.fake.company()

        pan = generate_pan(rng) if rng.chance(profile.pan_ratio) else None
        gstin = None
        if rng.chance(profile.gstin_ratio):
            gstin = generate_gstin(rng, pan or generate_pan(rng))

        bank_name = rng.choice(list(BANKS))
        bank_account = generate_bank_account(rng)
        ifsc = generate_ifsc(rng, BANKS[bank_name]) if rng.chance(profile.ifsc_ratio) else None

        status = "active" if rng.chance(profile.active_ratio) else "inactive"
        bank_change_verification = rng.chance(profile.bank_change_verified_ratio)

        updated = None
        if rng.chance(profile.updated_ratio):
            updated = created + timedelta(days=int(rng.next() * 100))
        verified_by = random_user(rng, user_count) if rng.chance(profile.verified_by_ratio) else None
        verification_date = None
        if rng.chance(profile.verification_date_ratio):
            verification_date = created + timedelta(days=int(rng.next() * 50))

        vendors.append(Vendor(
            vendor_id=vendor_id(i + 1),
            vendor_name=name,
            pan=pan,
            gstin=gstin,
            bank_account=bank_account,
            ifsc=ifsc,
            bank_name=bank_name,
            account_holder_name=name,
            address=rng.fake.address().replace("\n", ", "),
            contact_email=rng.fake.company_email(),
            contact_phone=generate_phone(rng),
            status=status,
            bank_change_verification=bank_change_verification,
            created_date=created,
            updated_date=updated,
            verified_by=verified_by,
            verification_date=verification_date,
        ))

    logger.debug("Generated %d vendors (%d active)", len(vendors), sum(v.is_active for v in vendors))
    return vendors


# =============================================================================
# CONTRACTS
# =============================================================================

def generate_contracts(
    vendors: List[Vendor],
    rng: SeededRandom,
    start_year: int,
    end_year: int,
    counters: SequenceCounters,
    user_count: int,
) -> List[Contract]:
    """
    Generate contracts for 20-30% of active vendors.

    Status is judged against Dec 31 of ``end_year`` so the result does not
    depend on when the run happens.
    """
    active = [v for v in vendors if v.is_active]
    share = 0.2 + rng.next() * 0.1
    selected = rng.shuffle(active)[: int(len(active) * share)]
    reference_date = date(end_year, 12, 31)
    span = end_year - start_year + 1

    contracts = []
    for vendor in selected:
        year = start_year + int(rng.next() * span)
        start = date(year, rng.randint(1, 12), rng.randint(1, 28))
        end = start + timedelta(days=365 * rng.randint(1, 3) - 1)
        contract_date = start - timedelta(days=rng.randint(1, 30))
        status = "expired" if end < reference_date else "active"

        approved_by = approval_date = None
        if rng.chance(0.8):
            approved_by = random_user(rng, user_count)
            approval_date = contract_date + timedelta(days=int(rng.next() * ((start - contract_date).days + 1)))

        contracts.append(Contract(
            contract_id="",
            contract_number="",
            vendor_id=vendor.vendor_id,
            contract_date=contract_date,
            start_date=start,
            end_date=end,
            contract_amount=round(100_000 + rng.next() * 9_900_000, 2) if rng.chance(0.9) else None,
            contract_type=rng.choice(CONTRACT_TYPES),
            status=status,
            created_by=random_user(rng, user_count),
            created_date=contract_date,
            approved_by=approved_by,
            approval_date=approval_date,
        ))

    contracts = number_by_date(contracts, "contract_date", "contract_id", CONTRACT_PREFIX, counters)
    for contract in contracts:
        year = contract.start_date.year
        contract.contract_number = contract_number(year, counters.next(CONTRACT_NUMBER_PREFIX, year))

    logger.debug("Generated %d contracts", len(contracts))
    return contracts


def link_contracts(purchase_orders: List[PurchaseOrder], contracts: List[Contract], rng: SeededRandom) -> int:
    """Attach a covering contract of the PO's vendor to roughly a third of POs."""
    by_vendor: Dict[str, List[Contract]] = {}
    for contract in contracts:
        by_vendor.setdefault(contract.vendor_id, []).append(contract)

    linked = 0
    for po in purchase_orders:
        covering = [c for c in by_vendor.get(po.vendor_id, []) if c.covers(po.po_date)]
        if covering and rng.next() > 0.65:
            po.contract_id = rng.choice(covering).contract_id
            linked += 1
    return linked


# =============================================================================
# ROLE MASTER
# =============================================================================

def generate_role_assignments(
    user_count: int,
    rng: SeededRandom,
    start_year: int,
    end_year: int,
    counters: SequenceCounters,
) -> List[RoleAssignment]:
    """Give every user in the pool 1-3 distinct roles."""
    base = date(start_year, 1, 1)
    reference_date = date(end_year, 12, 31)
    assignments = []

    for seq in range(1, user_count + 1):
        user = user_id(seq)
        for role in rng.shuffle(ROLES)[: rng.randint(1, 3)]:
            effective_from = base + timedelta(days=int(rng.next() * 365))
            effective_to = None
            if rng.chance(0.3):
                effective_to = effective_from + timedelta(days=rng.randint(180, 720))
            assignments.append(RoleAssignment(
                role_assignment_id="",
                user_id=user,
                role_name=role,
                department=rng.choice(DEPARTMENTS),
                effective_from=effective_from,
                effective_to=effective_to,
                is_active=effective_to is None or effective_to >= reference_date,
                created_by="SYSTEM",
                created_date=effective_from,
            ))

    return number_by_date(
        assignments, "effective_from", "role_assignment_id", ROLE_PREFIX, counters,
        formatter=lambda _prefix, year, seq: role_assignment_id(year, seq),
    )
