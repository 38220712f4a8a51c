"""
Account classification.

Account types are free text, so statement placement is decided by two
ordered rules: a keyword match on the declared type, then the numbering
convention of the chart of accounts. Both are pure functions of their
arguments.
"""
from django.db import models


class AccountClass(models.TextChoices):
    ASSET = "Asset", "Asset"
    LIABILITY = "Liability", "Liability"
    EQUITY = "Equity", "Equity"
    REVENUE = "Revenue", "Revenue"
    EXPENSE = "Expense", "Expense"
    UNKNOWN = "Unknown", "Unknown"


class ExpenseCategory(models.TextChoices):
    COST_OF_SALES = "cost_of_sales", "Cost of Sales"
    OPERATING = "operating", "Operating Expense"
    UNCATEGORIZED = "uncategorized", "Uncategorized"


# Checked in this order; first hit wins
TYPE_KEYWORDS = (
    (AccountClass.ASSET, ("asset",)),
    (AccountClass.LIABILITY, ("liability",)),
    (AccountClass.EQUITY, ("equity",)),
    (AccountClass.REVENUE, ("revenue", "income", "sales")),
    (AccountClass.EXPENSE, ("expense", "cost")),
)

# "30" must precede "3"
NUMBER_PREFIXES = (
    ("1", AccountClass.ASSET),
    ("2", AccountClass.LIABILITY),
    ("30", AccountClass.REVENUE),
    ("3", AccountClass.EQUITY),
    ("4", AccountClass.REVENUE),
    ("5", AccountClass.EXPENSE),
    ("6", AccountClass.EXPENSE),
    ("7", AccountClass.EXPENSE),
)

COST_OF_SALES_KEYWORDS = ("cost of sales", "cost of goods sold", "cogs", "materials", "direct cost")
COST_OF_SALES_PREFIXES = ("50",)
OPERATING_KEYWORDS = ("salary", "rent", "utilities", "office", "operating")
OPERATING_PREFIXES = ("51", "52")

DEBIT_NORMAL = frozenset({AccountClass.ASSET, AccountClass.EXPENSE})
CREDIT_NORMAL = frozenset({AccountClass.LIABILITY, AccountClass.EQUITY, AccountClass.REVENUE})
STATEMENT_CLASSES = tuple(c for c in AccountClass if c != AccountClass.UNKNOWN)


def classify_by_type(account_type):
    text = (account_type or "").lower()
    for account_class, keywords in TYPE_KEYWORDS:
        if any(word in text for word in keywords):
            return account_class
    return AccountClass.UNKNOWN


def classify_by_number(account_number):
    number = (account_number or "").strip()
    for prefix, account_class in NUMBER_PREFIXES:
        if number.startswith(prefix):
            return account_class
    return AccountClass.UNKNOWN


def classify(account_type, account_number):
    """Map a declared type and account number onto a statement class."""
    by_type = classify_by_type(account_type)
    if by_type != AccountClass.UNKNOWN:
        return by_type
    return classify_by_number(account_number)


def expense_category(account_name, account_number):
    name = (account_name or "").lower()
    number = (account_number or "").strip()
    if any(k in name for k in COST_OF_SALES_KEYWORDS) or number.startswith(COST_OF_SALES_PREFIXES):
        return ExpenseCategory.COST_OF_SALES
    if any(k in name for k in OPERATING_KEYWORDS) or number.startswith(OPERATING_PREFIXES):
        return ExpenseCategory.OPERATING
    return ExpenseCategory.UNCATEGORIZED


def is_cost_of_sales(account_name, account_number):
    return expense_category(account_name, account_number) == ExpenseCategory.COST_OF_SALES


def is_operating_expense(account_name, account_number):
    return expense_category(account_name, account_number) == ExpenseCategory.OPERATING


def is_debit_normal(account_class):
    # Unknown accounts carry no normal side; report them raw (debit - credit)
    return account_class not in CREDIT_NORMAL


def parse_account_class(value):
    """Resolve user input ("expense", "Expense", "EXPENSE") to an AccountClass."""
    text = (value or "").strip().lower()
    for account_class in STATEMENT_CLASSES:
        if account_class.value.lower() == text:
            return account_class
    return None
