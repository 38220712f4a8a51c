from django.urls import path

from . import views

urlpatterns = [
    path("accounts/", views.account_list, name="account-list"),
    path("accounts/<int:account_id>/", views.account_detail, name="account-detail"),

    path("gl-mappings/", views.gl_mapping_list, name="gl-mapping-list"),
    path("gl-mappings/<int:mapping_id>/", views.gl_mapping_detail, name="gl-mapping-detail"),

    path("vouchers/", views.voucher_list, name="voucher-list"),
    path("vouchers/pending/", views.voucher_pending, name="voucher-pending"),
    path("vouchers/next-number/", views.voucher_next_number, name="voucher-next-number"),
    path("vouchers/<int:voucher_id>/", views.voucher_detail, name="voucher-detail"),
    path("vouchers/<int:voucher_id>/void/", views.voucher_void, name="voucher-void"),

    path("payments/", views.payment_list, name="payment-list"),
    path("payments/next-number/", views.payment_next_number, name="payment-next-number"),
    path("payments/<int:payment_id>/", views.payment_detail, name="payment-detail"),

    path("receipts/", views.receipt_list, name="receipt-list"),
    path("receipts/next-number/", views.receipt_next_number, name="receipt-next-number"),
    path("receipts/<int:receipt_id>/", views.receipt_detail, name="receipt-detail"),

    path("reports/general-ledger/", views.general_ledger_report, name="report-general-ledger"),
    path("reports/trial-balance/", views.trial_balance_report, name="report-trial-balance"),
    path("reports/account-ledger/<int:account_id>/", views.account_ledger_report, name="report-account-ledger"),
    path("reports/income-statement/", views.income_statement_report, name="report-income-statement"),
    path("reports/profit-loss/", views.profit_loss_report, name="report-profit-loss"),
    path("reports/balance-sheet/", views.balance_sheet_report, name="report-balance-sheet"),
    path("reports/dashboard/", views.dashboard_report, name="report-dashboard"),
    path("reports/account-distribution/", views.account_distribution_report, name="report-account-distribution"),
    path("reports/monthly-trends/", views.monthly_trends_report, name="report-monthly-trends"),
    path("reports/cash-flow/", views.cash_flow_report, name="report-cash-flow"),
    path("reports/top-accounts/", views.top_accounts_report, name="report-top-accounts"),
    path("reports/transaction-volume/", views.transaction_volume_report, name="report-transaction-volume"),
    path("reports/financial-summary/", views.financial_summary_report, name="report-financial-summary"),
]
