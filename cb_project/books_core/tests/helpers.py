import datetime
from decimal import Decimal

from books_core.models import Account, User
from books_core.services.vouchers import create_voucher


class LedgerFixtures:
    """Mixin for TestCase classes: one user with a small chart of accounts."""

    def make_user(self, username="alice"):
        return User.objects.create_user(username=username, password="pw")

    def make_account(self, owner, number, name, account_type, **extra):
        return Account.objects.create(
            owner=owner, account_number=number, name=name, account_type=account_type, **extra
        )

    def make_chart(self, owner):
        self.cash = self.make_account(owner, "1000", "Cash", "Current Asset")
        self.payable = self.make_account(owner, "2000", "Accounts Payable", "Current Liability")
        self.capital = self.make_account(owner, "3100", "Owner Capital", "Equity")
        self.sales = self.make_account(owner, "4000", "Sales", "Revenue")
        self.cogs = self.make_account(owner, "5000", "Cost of Goods Sold", "Expense")
        self.rent = self.make_account(owner, "6000", "Office Rent", "Operating Expense")

    def make_voucher(self, owner, number, on, lines, total=None, description=""):
        """``lines`` is a list of (account, is_debit, amount) tuples."""
        if total is None:
            total = sum((Decimal(str(a)) for _, d, a in lines if d), Decimal("0"))
        return create_voucher(
            owner,
            {
                "voucher_number": number,
                "voucher_date": on,
                "transaction_type": "Journal",
                "description": description,
                "total_amount": total,
            },
            [
                {"account_id": account.pk, "is_debit": is_debit, "amount": amount}
                for account, is_debit, amount in lines
            ],
        )


def d(year, month, day):
    return datetime.date(year, month, day)
