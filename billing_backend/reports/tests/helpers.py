# reports/tests/helpers.py

"""
A small 2024 ledger shared by the report tests.

    member  invoice  issued      total   paid
    Acme    INV-001  2024-01-10  10000   4000
    Acme    INV-002  2024-02-05   5000   5000
    Beta    INV-003  2024-02-20   8000      0
    Beta    INV-004  2024-03-15   2000   1000
    Cobalt  INV-005  2024-03-15   3000   3000
    Cobalt  INV-006  2024-04-01      0      0
    Acme    INV-000  2023-12-15   1000      0   (outside 2024)

Payments: P1 Acme 4000, P2 Acme 5000, P3 Beta 1500 (1000 used),
P4 Cobalt 3000, P5 Beta 700 (unused).
"""

from __future__ import annotations

from datetime import date
from types import SimpleNamespace

from ledger.services.allocation_service import add_allocation
from ledger.tests.helpers import make_invoice, make_member, make_payment


def seed_ledger() -> SimpleNamespace:
    acme = make_member("Acme Trading")
    beta = make_member("Beta Foods")
    cobalt = make_member("Cobalt Ltd")

    make_invoice(acme, total="1000", issue_date=date(2023, 12, 15), number="INV-000")
    inv1 = make_invoice(acme, total="10000", issue_date=date(2024, 1, 10), number="INV-001")
    inv2 = make_invoice(acme, total="5000", issue_date=date(2024, 2, 5), number="INV-002")
    inv3 = make_invoice(beta, total="8000", issue_date=date(2024, 2, 20), number="INV-003")
    inv4 = make_invoice(beta, total="2000", issue_date=date(2024, 3, 15), number="INV-004")
    inv5 = make_invoice(cobalt, total="3000", issue_date=date(2024, 3, 15), number="INV-005")
    inv6 = make_invoice(cobalt, total="0", issue_date=date(2024, 4, 1), number="INV-006")

    p1 = make_payment(acme, amount="4000", payment_date=date(2024, 1, 20))
    p2 = make_payment(acme, amount="5000", payment_date=date(2024, 2, 10))
    p3 = make_payment(beta, amount="1500", payment_date=date(2024, 3, 20))
    p4 = make_payment(cobalt, amount="3000", payment_date=date(2024, 3, 25))
    p5 = make_payment(beta, amount="700", payment_date=date(2024, 4, 2))

    add_allocation(payment_id=p1.pk, invoice_id=inv1.pk, amount="4000")
    add_allocation(payment_id=p2.pk, invoice_id=inv2.pk, amount="5000")
    add_allocation(payment_id=p3.pk, invoice_id=inv4.pk, amount="1000")
    add_allocation(payment_id=p4.pk, invoice_id=inv5.pk, amount="3000")

    return SimpleNamespace(
        acme=acme,
        beta=beta,
        cobalt=cobalt,
        invoices=[inv1, inv2, inv3, inv4, inv5, inv6],
        payments=[p1, p2, p3, p4, p5],
    )
