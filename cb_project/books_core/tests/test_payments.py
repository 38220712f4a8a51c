import os
import shutil
import tempfile
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, TransactionTestCase, override_settings

from books_core.exceptions import ConflictError, InternalError, NotFoundError
from books_core.models import Payment, PaymentAttachment, PaymentLine, Voucher, VoucherStatus
from books_core.services.payment import (delete_payment, next_payment_number, pending_vouchers,
                                         record_payment, remaining_amount, update_payment,
                                         update_voucher_status, voucher_status_for)
from books_core.services.vouchers import delete_voucher, update_voucher, void_voucher

from .helpers import LedgerFixtures, d

MEDIA_ROOT = tempfile.mkdtemp()


class VoucherStatusRuleTests(TestCase):

    def test_status_follows_paid_total(self):
        self.assertEqual(voucher_status_for(Decimal("500"), Decimal("0")), VoucherStatus.PENDING)
        self.assertEqual(voucher_status_for(Decimal("500"), Decimal("300")), VoucherStatus.PARTIALLY_PAID)
        self.assertEqual(voucher_status_for(Decimal("500"), Decimal("500")), VoucherStatus.PAID)
        self.assertEqual(voucher_status_for(Decimal("500"), Decimal("650")), VoucherStatus.PAID)
        self.assertEqual(voucher_status_for(Decimal("0"), Decimal("0")), VoucherStatus.PAID)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class PaymentAllocationTests(LedgerFixtures, TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.user = self.make_user()
        self.make_chart(self.user)
        # supplier bill for 500
        self.voucher = self.make_voucher(self.user, "V-1", d(2025, 3, 1), [
            (self.rent, True, "500.00"), (self.payable, False, "500.00"),
        ])

    def pay(self, number, amount, status="Paid", voucher=None, **extra):
        header = {
            "payment_number": number,
            "payment_date": "2025-03-10",
            "payee_name": "Landlord Ltd",
            "payment_method": "Bank Transfer",
            "account_id": self.cash.pk,
            "total_amount": amount,
            "status": status,
        }
        header.update(extra)
        lines = [{"voucher_id": (voucher or self.voucher).pk, "amount": amount}]
        return record_payment(self.user, header, lines)

    """ Partial then full settlement """
    def test_partial_then_full_payment(self):
        self.pay("PMT-1", "300.00")
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PARTIALLY_PAID)
        self.assertEqual(remaining_amount(self.voucher), Decimal("200.00"))

        self.pay("PMT-2", "200.00")
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PAID)
        self.assertEqual(remaining_amount(self.voucher), Decimal("0.00"))

    def test_paid_payment_cannot_be_edited_or_deleted(self):
        payment = self.pay("PMT-1", "300.00")
        header = {
            "payment_number": "PMT-1", "payment_date": "2025-03-10", "payee_name": "Someone else",
            "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": "300.00",
        }
        with self.assertRaises(ConflictError) as cm:
            update_payment(self.user, payment.pk, header, [])
        self.assertEqual(cm.exception.message, "Cannot modify a payment that has already been processed")

        with self.assertRaises(ConflictError):
            delete_payment(self.user, payment.pk)
        self.assertTrue(Payment.objects.filter(pk=payment.pk).exists())

    def test_fully_paid_voucher_takes_no_more_payments(self):
        self.pay("PMT-1", "500.00")
        with self.assertRaises(ConflictError) as cm:
            self.pay("PMT-2", "10.00")
        self.assertIn("already fully paid", cm.exception.message)
        self.assertFalse(Payment.objects.filter(payment_number="PMT-2").exists())

    def test_draft_payment_does_not_settle_voucher(self):
        self.pay("PMT-1", "500.00", status="draft")
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PENDING)
        self.assertEqual(Payment.objects.get(payment_number="PMT-1").status, "Draft")

    def test_draft_payment_can_be_reworked(self):
        payment = self.pay("PMT-1", "100.00", status="Draft")
        header = {
            "payment_number": "PMT-1", "payment_date": "2025-03-12", "payee_name": "Landlord Ltd",
            "payment_method": "Cheque", "account_id": self.cash.pk, "total_amount": "250.00",
            "status": "Paid",
        }
        update_payment(self.user, payment.pk, header, [{"voucher_id": self.voucher.pk, "amount_paid": "250.00"}])

        payment.refresh_from_db()
        self.assertEqual(payment.status, "Paid")
        self.assertEqual(payment.lines.get().amount_paid, Decimal("250.00"))
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PARTIALLY_PAID)

    def test_deleting_draft_releases_voucher(self):
        payment = self.pay("PMT-1", "100.00", status="Draft")
        delete_payment(self.user, payment.pk)
        self.assertFalse(PaymentLine.objects.filter(voucher=self.voucher).exists())
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PENDING)

    def test_void_voucher_cannot_be_paid(self):
        other = self.make_voucher(self.user, "V-2", d(2025, 3, 2), [
            (self.rent, True, "50.00"), (self.payable, False, "50.00"),
        ])
        void_voucher(self.user, other.pk)
        with self.assertRaises(ConflictError):
            self.pay("PMT-1", "50.00", voucher=other)

    def test_failed_payment_leaves_nothing_behind(self):
        header = {
            "payment_number": "PMT-1", "payment_date": "2025-03-10", "payee_name": "Landlord Ltd",
            "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": "300.00",
            "status": "Paid",
        }
        lines = [
            {"voucher_id": self.voucher.pk, "amount": "100.00"},
            {"voucher_id": 999999, "amount": "200.00"},
        ]
        with self.assertRaises(NotFoundError):
            record_payment(self.user, header, lines)

        self.assertFalse(Payment.objects.exists())
        self.assertFalse(PaymentLine.objects.exists())
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PENDING)

    def test_header_validation(self):
        with self.assertRaises(ValidationError):
            self.pay("PMT-1", "0")
        with self.assertRaises(ValidationError):
            self.pay("PMT-1", "10.00", status="Refunded")
        with self.assertRaises(ValidationError):
            record_payment(self.user, {"payment_number": "PMT-1"}, [])

    def test_duplicate_payment_number(self):
        self.pay("PMT-1", "100.00")
        with self.assertRaises(ConflictError) as cm:
            self.pay("PMT-1", "100.00")
        self.assertEqual(cm.exception.message, "Payment number already exists")

    def test_payment_without_lines(self):
        payment = record_payment(self.user, {
            "payment_number": "PMT-9", "payment_date": "2025-03-10", "payee_name": "Utility Co",
            "payment_method": "Card", "account_id": self.cash.pk, "total_amount": "42.00",
        })
        self.assertEqual(payment.lines.count(), 0)
        self.assertEqual(payment.status, "Draft")

    def test_attachments_are_stored_with_the_payment(self):
        upload = SimpleUploadedFile("invoice.pdf", b"%PDF-1.4 test", content_type="application/pdf")
        header = {
            "payment_number": "PMT-1", "payment_date": "2025-03-10", "payee_name": "Landlord Ltd",
            "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": "100.00",
        }
        payment = record_payment(self.user, header, [], [upload])

        attachment = PaymentAttachment.objects.get(payment=payment)
        self.assertEqual(attachment.file_name, "invoice.pdf")
        self.assertEqual(attachment.file_type, "application/pdf")
        self.assertTrue(attachment.file.name.startswith(f"payments/{payment.pk}/"))


class PaymentRollbackTests(LedgerFixtures, TransactionTestCase):
    """Real commits, so a failure after the first write must undo it."""

    def setUp(self):
        self.user = self.make_user()
        self.make_chart(self.user)
        self.voucher = self.make_voucher(self.user, "V-1", d(2025, 3, 1), [
            (self.rent, True, "500.00"), (self.payable, False, "500.00"),
        ])

    def test_failure_while_storing_attachments_rolls_back(self):
        header = {
            "payment_number": "PMT-1", "payment_date": "2025-03-10", "payee_name": "Landlord Ltd",
            "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": "500.00",
            "status": "Paid",
        }
        lines = [{"voucher_id": self.voucher.pk, "amount": "500.00"}]

        with mock.patch(
            "books_core.services.payment._save_attachments", side_effect=InternalError("storage unavailable")
        ):
            with self.assertRaises(InternalError):
                record_payment(self.user, header, lines, ["placeholder"])

        self.assertFalse(Payment.objects.exists())
        self.assertFalse(PaymentLine.objects.exists())
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PENDING)

    def test_failure_after_storing_attachments_removes_files(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        header = {
            "payment_number": "PMT-1", "payment_date": "2025-03-10", "payee_name": "Landlord Ltd",
            "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": "500.00",
            "status": "Paid",
        }
        lines = [{"voucher_id": self.voucher.pk, "amount": "500.00"}]
        bill = SimpleUploadedFile("bill.pdf", b"%PDF-1.4", content_type="application/pdf")

        with override_settings(MEDIA_ROOT=media_root), mock.patch(
            "books_core.services.payment._recompute", side_effect=InternalError("status update failed")
        ):
            with self.assertRaises(InternalError):
                record_payment(self.user, header, lines, [bill])

        self.assertFalse(PaymentAttachment.objects.exists())
        stored = [name for _, _, files in os.walk(media_root) for name in files]
        self.assertEqual(stored, [])


class VoucherStatusRecomputeTests(LedgerFixtures, TestCase):

    def setUp(self):
        self.user = self.make_user()
        self.make_chart(self.user)
        self.voucher = self.make_voucher(self.user, "V-1", d(2025, 3, 1), [
            (self.rent, True, "500.00"), (self.payable, False, "500.00"),
        ])
        record_payment(self.user, {
            "payment_number": "PMT-1", "payment_date": "2025-03-10", "payee_name": "Landlord Ltd",
            "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": "300.00",
            "status": "Paid",
        }, [{"voucher_id": self.voucher.pk, "amount": "300.00"}])

    def test_recompute_is_idempotent(self):
        self.voucher.refresh_from_db()
        stamp = self.voucher.updated_at

        first = update_voucher_status(self.voucher.pk, self.user)
        second = update_voucher_status(self.voucher.pk, self.user)

        self.assertEqual(first, VoucherStatus.PARTIALLY_PAID)
        self.assertEqual(first, second)
        self.voucher.refresh_from_db()
        # no write when nothing changed
        self.assertEqual(self.voucher.updated_at, stamp)

    def test_lowering_total_settles_voucher(self):
        update_voucher(self.user, self.voucher.pk, {
            "voucher_number": "V-1", "voucher_date": "2025-03-01", "transaction_type": "Bill",
            "total_amount": "300.00",
        }, [
            {"account_id": self.rent.pk, "is_debit": True, "amount": "300.00"},
            {"account_id": self.payable.pk, "is_debit": False, "amount": "300.00"},
        ])
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.status, VoucherStatus.PAID)

    def test_paid_voucher_is_frozen(self):
        Voucher.objects.filter(pk=self.voucher.pk).update(status=VoucherStatus.PAID)
        with self.assertRaises(ConflictError):
            update_voucher(self.user, self.voucher.pk, {
                "voucher_number": "V-1", "voucher_date": "2025-03-01", "transaction_type": "Bill",
                "total_amount": "500.00",
            }, [{"account_id": self.rent.pk, "is_debit": True, "amount": "500.00"}])

    def test_voucher_with_payments_cannot_be_voided_or_deleted(self):
        with self.assertRaises(ConflictError):
            void_voucher(self.user, self.voucher.pk)
        with self.assertRaises(ConflictError):
            delete_voucher(self.user, self.voucher.pk)
        self.assertTrue(Voucher.objects.filter(pk=self.voucher.pk).exists())

    def test_other_owner_cannot_recompute(self):
        with self.assertRaises(NotFoundError):
            update_voucher_status(self.voucher.pk, self.make_user("bob"))


class PendingVoucherTests(LedgerFixtures, TestCase):

    def setUp(self):
        self.user = self.make_user()
        self.make_chart(self.user)
        self.bill = self.make_voucher(self.user, "V-1", d(2025, 3, 1), [
            (self.rent, True, "500.00"), (self.payable, False, "500.00"),
        ], description="March rent")
        self.settled = self.make_voucher(self.user, "V-2", d(2025, 3, 2), [
            (self.rent, True, "80.00"), (self.payable, False, "80.00"),
        ], description="Cleaning")
        self.voided = self.make_voucher(self.user, "V-3", d(2025, 3, 3), [
            (self.rent, True, "10.00"), (self.payable, False, "10.00"),
        ])
        void_voucher(self.user, self.voided.pk)
        for number, voucher, amount in (("PMT-1", self.bill, "300.00"), ("PMT-2", self.settled, "80.00")):
            record_payment(self.user, {
                "payment_number": number, "payment_date": "2025-03-10", "payee_name": "Landlord Ltd",
                "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": amount,
                "status": "Paid",
            }, [{"voucher_id": voucher.pk, "amount": amount}])

    def test_lists_vouchers_with_money_left(self):
        rows = pending_vouchers(self.user)
        self.assertEqual([r.voucher_number for r in rows], ["V-1"])
        self.assertEqual(rows[0].paid_amount, Decimal("300.00"))
        self.assertEqual(rows[0].remaining_amount, Decimal("200.00"))
        self.assertEqual(rows[0].to_dict()["remainingAmount"], Decimal("200.00"))

    def test_search_matches_number_or_description(self):
        self.assertEqual(len(pending_vouchers(self.user, "march")), 1)
        self.assertEqual(pending_vouchers(self.user, "nothing like this"), [])


class PaymentNumberTests(LedgerFixtures, TestCase):

    def test_numbers_run_per_day(self):
        user = self.make_user()
        self.make_chart(user)
        self.assertEqual(next_payment_number(user, d(2025, 3, 10)), "PMT-20250310-001")
        record_payment(user, {
            "payment_number": "PMT-20250310-001", "payment_date": "2025-03-10", "payee_name": "X",
            "payment_method": "Cash", "account_id": self.cash.pk, "total_amount": "1.00",
        })
        self.assertEqual(next_payment_number(user, d(2025, 3, 10)), "PMT-20250310-002")
        self.assertEqual(next_payment_number(user, d(2025, 3, 11)), "PMT-20250311-001")
