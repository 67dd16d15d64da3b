# ledger/tests/test_invariants.py

from __future__ import annotations

import random
from decimal import Decimal

from django.test import TestCase

from ledger.models import Allocation
from ledger.services.allocation_service import (
    add_allocation,
    delete_allocation,
    save_allocations,
)
from ledger.services.exceptions import DuplicateAllocation, NotFound, OverAllocation
from ledger.tests.helpers import ledger_violations, make_invoice, make_member, make_payment

EXPECTED_REJECTIONS = (OverAllocation, DuplicateAllocation, NotFound)


class RandomizedLedgerInvariantTests(TestCase):
    """
    GUARANTEES (checked after every command, accepted or rejected):
    - Σ allocations per invoice <= invoice total
    - Σ allocations per payment <= payment amount
    - cached paid / allocated / status columns match the allocation table
    """

    STEPS = 60

    def setUp(self):
        member = make_member("Random Member")
        self.invoices = [
            make_invoice(member, total=total)
            for total in ("1000", "2500.50", "0", "750", "4000")
        ]
        self.payments = [
            make_payment(member, amount=amount)
            for amount in ("1200", "3000", "99.99", "2000")
        ]

    def _amount(self, rng: random.Random) -> Decimal:
        return Decimal(rng.randint(1, 250000)) / Decimal(100)

    def _step(self, rng: random.Random) -> None:
        payment = rng.choice(self.payments)
        op = rng.choice(("add", "add", "delete", "save"))

        if op == "add":
            add_allocation(
                payment_id=payment.pk,
                invoice_id=rng.choice(self.invoices).pk,
                amount=self._amount(rng),
            )
        elif op == "delete":
            ids = list(Allocation.objects.filter(payment=payment).values_list("pk", flat=True))
            allocation_id = rng.choice(ids) if ids else 999999
            delete_allocation(payment_id=payment.pk, allocation_id=allocation_id)
        else:
            chosen = rng.sample(self.invoices, rng.randint(0, 3))
            save_allocations(
                payment_id=payment.pk,
                lines=[(inv.pk, self._amount(rng)) for inv in chosen],
            )

    def test_invariants_hold_across_random_sequences(self):
        for seed in (7, 42, 2024):
            rng = random.Random(seed)
            accepted = 0
            for step in range(self.STEPS):
                try:
                    self._step(rng)
                    accepted += 1
                except EXPECTED_REJECTIONS:
                    pass

                problems = ledger_violations()
                self.assertEqual(problems, [], f"seed={seed} step={step}")

            self.assertGreater(accepted, 0, f"seed={seed} never changed the ledger")
