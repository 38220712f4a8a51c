from .account_ledger import AccountLedgerReport, account_ledger
from .balance_sheet import BalanceSheetReport, balance_sheet
from .general_ledger import GeneralLedgerReport, general_ledger
from .income_statement import (IncomeStatementReport, PeriodComparison,
                               ProfitLossReport, income_statement, profit_loss)
from .trial_balance import TrialBalanceReport, trial_balance
