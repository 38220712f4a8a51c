from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from books_core.exceptions import ConflictError, NotFoundError
from books_core.models import Voucher, VoucherLine, VoucherStatus
from books_core.services.vouchers import (create_voucher, delete_voucher, next_voucher_number,
                                          update_voucher, void_voucher)

from .helpers import LedgerFixtures, d


class VoucherCreateTests(LedgerFixtures, TestCase):

    def setUp(self):
        self.user = self.make_user()
        self.make_chart(self.user)
        self.header = {
            "voucher_number": "V-00001",
            "voucher_date": "2025-04-01",
            "transaction_type": "Journal",
            "description": "Opening cash",
            "total_amount": "750.00",
        }

    def test_creates_pending_voucher_with_lines(self):
        voucher = create_voucher(self.user, self.header, [
            {"account_id": self.cash.pk, "is_debit": True, "amount": "750.00"},
            {"account_id": self.capital.pk, "is_debit": False, "amount": 750},
        ])

        self.assertEqual(voucher.status, VoucherStatus.PENDING)
        self.assertEqual(voucher.voucher_date, d(2025, 4, 1))
        self.assertEqual(voucher.lines.count(), 2)
        self.assertEqual(voucher.compute_totals(), (Decimal("750.00"), Decimal("750.00")))
        self.assertTrue(voucher.is_balanced())

    def test_unbalanced_voucher_is_saved_with_warning(self):
        with self.assertLogs("books_core.services.vouchers", level="WARNING") as logs:
            voucher = create_voucher(self.user, self.header, [
                {"account_id": self.cash.pk, "is_debit": True, "amount": "750.00"},
                {"account_id": self.capital.pk, "is_debit": False, "amount": "700.00"},
            ])
        self.assertIn("unbalanced", logs.output[0])
        self.assertFalse(voucher.is_balanced())
        self.assertEqual(voucher.balance_difference(), Decimal("50.00"))

    def test_amounts_round_half_up_to_cents(self):
        voucher = create_voucher(self.user, self.header, [
            {"account_id": self.cash.pk, "is_debit": True, "amount": "10.005"},
        ])
        self.assertEqual(voucher.lines.get().amount, Decimal("10.01"))

    def test_line_validation(self):
        bad_lines = (
            [],
            [{"account_id": self.cash.pk, "is_debit": "yes", "amount": "1.00"}],
            [{"account_id": self.cash.pk, "is_debit": True, "amount": "0"}],
            [{"account_id": self.cash.pk, "is_debit": True, "amount": "-5"}],
            [{"account_id": None, "is_debit": True, "amount": "5"}],
        )
        for lines in bad_lines:
            with self.assertRaises(ValidationError):
                create_voucher(self.user, self.header, lines)
        self.assertFalse(Voucher.objects.exists())

    def test_header_validation(self):
        header = dict(self.header, voucher_date="01/04/2025")
        with self.assertRaises(ValidationError):
            create_voucher(self.user, header, [{"account_id": self.cash.pk, "is_debit": True, "amount": "1"}])
        header = dict(self.header, total_amount="-1")
        with self.assertRaises(ValidationError):
            create_voucher(self.user, header, [{"account_id": self.cash.pk, "is_debit": True, "amount": "1"}])

    def test_unknown_or_foreign_account(self):
        other = self.make_user("bob")
        foreign = self.make_account(other, "1000", "Bob's Cash", "Asset")
        for account_id in (999999, foreign.pk):
            with self.assertRaises(NotFoundError):
                create_voucher(self.user, self.header, [
                    {"account_id": account_id, "is_debit": True, "amount": "1.00"},
                ])

    def test_duplicate_number_is_a_conflict(self):
        lines = [{"account_id": self.cash.pk, "is_debit": True, "amount": "1.00"}]
        create_voucher(self.user, self.header, lines)
        with self.assertRaises(ConflictError) as cm:
            create_voucher(self.user, self.header, lines)
        self.assertEqual(cm.exception.message, "Voucher number already exists")

    def test_same_number_for_another_owner_is_fine(self):
        lines = [{"account_id": self.cash.pk, "is_debit": True, "amount": "1.00"}]
        create_voucher(self.user, self.header, lines)

        bob = self.make_user("bob")
        bob_cash = self.make_account(bob, "1000", "Cash", "Asset")
        create_voucher(bob, self.header, [{"account_id": bob_cash.pk, "is_debit": True, "amount": "1.00"}])
        self.assertEqual(Voucher.objects.filter(voucher_number="V-00001").count(), 2)


class VoucherLineModelTests(LedgerFixtures, TestCase):

    def test_line_amount_must_be_positive(self):
        user = self.make_user()
        self.make_chart(user)
        voucher = self.make_voucher(user, "V-1", d(2025, 4, 1), [(self.cash, True, "1.00")])
        with self.assertRaises(ValidationError):
            VoucherLine.objects.create(voucher=voucher, account=self.cash, is_debit=True, amount=Decimal("0"))

    def test_line_account_must_share_owner(self):
        user = self.make_user()
        self.make_chart(user)
        voucher = self.make_voucher(user, "V-1", d(2025, 4, 1), [(self.cash, True, "1.00")])
        foreign = self.make_account(self.make_user("bob"), "1000", "Cash", "Asset")
        with self.assertRaises(ValidationError):
            VoucherLine.objects.create(voucher=voucher, account=foreign, is_debit=True, amount=Decimal("1"))


class VoucherChangeTests(LedgerFixtures, TestCase):

    def setUp(self):
        self.user = self.make_user()
        self.make_chart(self.user)
        self.voucher = self.make_voucher(self.user, "V-00001", d(2025, 4, 1), [
            (self.cash, True, "100.00"), (self.sales, False, "100.00"),
        ])

    def test_update_replaces_lines(self):
        voucher = update_voucher(self.user, self.voucher.pk, {
            "voucher_number": "V-00001", "voucher_date": "2025-04-02", "transaction_type": "Sale",
            "total_amount": "120.00",
        }, [
            {"account_id": self.cash.pk, "is_debit": True, "amount": "120.00"},
            {"account_id": self.sales.pk, "is_debit": False, "amount": "120.00", "description": "corrected"},
        ])
        self.assertEqual(voucher.total_amount, Decimal("120.00"))
        self.assertEqual(voucher.voucher_date, d(2025, 4, 2))
        self.assertEqual(
            list(voucher.lines.values_list("amount", flat=True)), [Decimal("120.00"), Decimal("120.00")]
        )
        self.assertEqual(VoucherLine.objects.filter(voucher=voucher).count(), 2)

    def test_void_voucher_is_frozen(self):
        void_voucher(self.user, self.voucher.pk)
        with self.assertRaises(ConflictError):
            update_voucher(self.user, self.voucher.pk, {
                "voucher_number": "V-00001", "voucher_date": "2025-04-02", "transaction_type": "Sale",
                "total_amount": "100.00",
            }, [{"account_id": self.cash.pk, "is_debit": True, "amount": "100.00"}])

    def test_void_is_idempotent(self):
        void_voucher(self.user, self.voucher.pk)
        voucher = void_voucher(self.user, self.voucher.pk)
        self.assertEqual(voucher.status, VoucherStatus.VOID)

    def test_delete_takes_lines_with_it(self):
        delete_voucher(self.user, self.voucher.pk)
        self.assertFalse(Voucher.objects.filter(pk=self.voucher.pk).exists())
        self.assertFalse(VoucherLine.objects.filter(voucher_id=self.voucher.pk).exists())

    def test_other_owner_sees_not_found(self):
        with self.assertRaises(NotFoundError):
            delete_voucher(self.make_user("bob"), self.voucher.pk)

    def test_next_number_skips_hand_typed_numbers(self):
        self.make_voucher(self.user, "JE-2025-7", d(2025, 4, 3), [(self.cash, True, "1.00")])
        self.assertEqual(next_voucher_number(self.user), "V-00002")
