from django.test import SimpleTestCase

from books_core.services.classifier import (AccountClass, ExpenseCategory, classify,
                                            classify_by_number, expense_category,
                                            is_debit_normal, parse_account_class)


class ClassifyTests(SimpleTestCase):

    def test_type_keyword_wins_over_number(self):
        self.assertEqual(classify("Current Asset", "1001"), AccountClass.ASSET)
        # number says Asset, declared type says Revenue
        self.assertEqual(classify("Other Income", "1500"), AccountClass.REVENUE)

    def test_keyword_match_is_case_insensitive_substring(self):
        self.assertEqual(classify("LONG-TERM LIABILITY", ""), AccountClass.LIABILITY)
        self.assertEqual(classify("Shareholder equity", ""), AccountClass.EQUITY)
        self.assertEqual(classify("Sales", ""), AccountClass.REVENUE)
        self.assertEqual(classify("Operating Expense", ""), AccountClass.EXPENSE)
        self.assertEqual(classify("Freight cost", ""), AccountClass.EXPENSE)

    def test_revenue_keywords_are_checked_before_expense_keywords(self):
        # "sales" hits before "cost"
        self.assertEqual(classify("Cost of Sales", "5000"), AccountClass.REVENUE)

    def test_number_prefix_fallback(self):
        self.assertEqual(classify("", "1200"), AccountClass.ASSET)
        self.assertEqual(classify("Misc", "2100"), AccountClass.LIABILITY)
        self.assertEqual(classify(None, "3100"), AccountClass.EQUITY)
        self.assertEqual(classify("", "4000"), AccountClass.REVENUE)
        for number in ("5000", "6100", "7200"):
            self.assertEqual(classify("", number), AccountClass.EXPENSE)

    def test_prefix_30_is_revenue_not_equity(self):
        self.assertEqual(classify_by_number("3050"), AccountClass.REVENUE)
        self.assertEqual(classify_by_number("3"), AccountClass.EQUITY)

    def test_unmatched_account_is_unknown(self):
        self.assertEqual(classify("Suspense", "9000"), AccountClass.UNKNOWN)
        self.assertEqual(classify("", ""), AccountClass.UNKNOWN)


class NormalSideTests(SimpleTestCase):

    def test_debit_and_credit_normal_classes(self):
        self.assertTrue(is_debit_normal(AccountClass.ASSET))
        self.assertTrue(is_debit_normal(AccountClass.EXPENSE))
        for account_class in (AccountClass.LIABILITY, AccountClass.EQUITY, AccountClass.REVENUE):
            self.assertFalse(is_debit_normal(account_class))

    def test_unknown_is_reported_raw(self):
        self.assertTrue(is_debit_normal(AccountClass.UNKNOWN))


class ExpenseCategoryTests(SimpleTestCase):

    def test_cost_of_sales_by_name_or_prefix(self):
        self.assertEqual(expense_category("Cost of Goods Sold", "6900"), ExpenseCategory.COST_OF_SALES)
        self.assertEqual(expense_category("Raw materials", "6000"), ExpenseCategory.COST_OF_SALES)
        self.assertEqual(expense_category("Freight", "5010"), ExpenseCategory.COST_OF_SALES)

    def test_operating_by_name_or_prefix(self):
        self.assertEqual(expense_category("Office Rent", "6000"), ExpenseCategory.OPERATING)
        self.assertEqual(expense_category("Misc", "5200"), ExpenseCategory.OPERATING)

    def test_everything_else_is_uncategorized(self):
        self.assertEqual(expense_category("Bank Fees", "6900"), ExpenseCategory.UNCATEGORIZED)


class ParseAccountClassTests(SimpleTestCase):

    def test_any_case(self):
        self.assertEqual(parse_account_class("expense"), AccountClass.EXPENSE)
        self.assertEqual(parse_account_class(" LIABILITY "), AccountClass.LIABILITY)

    def test_unknown_input(self):
        self.assertIsNone(parse_account_class("Unknown"))
        self.assertIsNone(parse_account_class("stuff"))
        self.assertIsNone(parse_account_class(None))
