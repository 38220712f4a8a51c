import json
import logging
import re
from functools import wraps

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import ProtectedError
from django.http import JsonResponse
from django.http.multipartparser import MultiPartParserError
from django.views.decorators.csrf import csrf_exempt

from .exceptions import LedgerError
from .models import Account, GLMapping, Payment, Receipt, Voucher
from .reports import (account_ledger, balance_sheet, general_ledger,
                      income_statement, profit_loss, trial_balance)
from .reports import summary
from .services import accounts as account_service
from .services import payment as payment_service
from .services import receipts as receipt_service
from .services import vouchers as voucher_service
from .services.common import get_owned, require_owner, to_date
from .services.numbering import amount_in_words

logger = logging.getLogger(__name__)

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(data):
    """camelCase request keys -> snake_case service keys (recursively)."""
    if isinstance(data, dict):
        return {_CAMEL.sub("_", k).lower(): _snake(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_snake(v) for v in data]
    return data


def _ok(data, status=200):
    return JsonResponse({"success": True, "data": data}, status=status, encoder=DjangoJSONEncoder)


def _error(message, status):
    return JsonResponse({"success": False, "message": message}, status=status)


def api_view(*methods):
    """Authenticate, dispatch on method, and map ledger errors to HTTP."""

    def decorator(func):
        @csrf_exempt
        @wraps(func)
        def wrapper(request, *args, **kwargs):
            if request.method not in methods:
                return _error("Method not allowed", 405)
            try:
                owner = require_owner(getattr(request, "owner", None))
                return func(request, owner, *args, **kwargs)
            except ValidationError as e:
                return _error("; ".join(e.messages), 400)
            except ProtectedError:
                return _error("Record is referenced by other records", 409)
            except LedgerError as e:
                if e.status_code >= 500:
                    logger.error("ledger failure in %s: %s", func.__name__, e.message)
                    return _error("An unexpected error occurred", 500)
                return _error(e.message, e.status_code)
            except Exception:
                logger.exception("unexpected failure in %s", func.__name__)
                return _error("An unexpected error occurred", 500)

        return wrapper

    return decorator


def _multipart(request):
    # Django only populates POST/FILES for POST requests
    if request.method == "POST":
        return request.POST, request.FILES
    try:
        return request.parse_file_upload(request.META, request)
    except MultiPartParserError as e:
        raise ValidationError(f"Malformed upload: {e}")


def _payload(request):
    """(data, attachments) from a JSON body, or from a multipart upload
    whose ``payload`` field carries the JSON."""
    attachments = []
    if request.content_type == "multipart/form-data":
        post, files = _multipart(request)
        raw = post.get("payload") or "{}"
        attachments = files.getlist("attachments")
    else:
        raw = request.body or b"{}"
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return _snake(data), attachments


def _body(request):
    return _payload(request)[0]


def _query_date(request, name, required=True):
    value = request.GET.get(name)
    if not value and not required:
        return None
    return to_date(value, name)


# ---------- serializers ----------
def _account_dict(a):
    return {
        "accountId": a.pk,
        "accountNumber": a.account_number,
        "accountName": a.name,
        "accountType": a.account_type,
        "accountClass": str(a.account_class),
        "parentAccountId": a.parent_id,
        "subaccount": a.subaccount,
        "description": a.description,
    }


def _mapping_dict(m):
    return {
        "mappingId": m.pk,
        "transactionType": m.transaction_type,
        "debitAccountId": m.debit_account_id,
        "creditAccountId": m.credit_account_id,
    }


def _voucher_dict(v, with_lines=False):
    data = {
        "voucherId": v.pk,
        "voucherNumber": v.voucher_number,
        "voucherDate": v.voucher_date,
        "transactionType": v.transaction_type,
        "description": v.description,
        "totalAmount": v.total_amount,
        "status": v.status,
    }
    if with_lines:
        debit, credit = v.compute_totals()
        data.update(
            {
                "totalDebits": debit,
                "totalCredits": credit,
                "isBalanced": v.is_balanced(),
                "remainingAmount": payment_service.remaining_amount(v),
                "lines": [
                    {
                        "detailId": line.pk,
                        "accountId": line.account_id,
                        "accountNumber": line.account.account_number,
                        "accountName": line.account.name,
                        "isDebit": line.is_debit,
                        "amount": line.amount,
                        "description": line.description,
                    }
                    for line in v.lines.select_related("account")
                ],
            }
        )
    return data


def _payment_dict(p, with_lines=False):
    data = {
        "paymentId": p.pk,
        "paymentNumber": p.payment_number,
        "paymentDate": p.payment_date,
        "payeeName": p.payee_name,
        "paymentMethod": p.payment_method,
        "accountId": p.account_id,
        "totalAmount": p.total_amount,
        "amountInWords": amount_in_words(p.total_amount),
        "referenceNumber": p.reference_number,
        "description": p.description,
        "status": p.status,
    }
    if with_lines:
        data["lines"] = [
            {
                "detailId": line.pk,
                "voucherId": line.voucher_id,
                "voucherNumber": line.voucher.voucher_number,
                "amountPaid": line.amount_paid,
            }
            for line in p.lines.select_related("voucher")
        ]
        data["attachments"] = [
            {"attachmentId": a.pk, "fileName": a.file_name, "fileType": a.file_type, "uploadDate": a.upload_date}
            for a in p.attachments.all()
        ]
    return data


def _receipt_dict(r):
    return {
        "receiptId": r.pk,
        "receiptNumber": r.receipt_number,
        "payerName": r.payer_name,
        "amount": r.amount,
        "currency": r.currency,
        "amountInWords": amount_in_words(r.amount, r.currency),
        "date": r.date,
        "paymentMethod": r.payment_method,
        "description": r.description,
        # full precision; sent back as updatedAt on edit
        "updatedAt": r.updated_at.isoformat(),
    }


# ---------- accounts ----------
@api_view("GET", "POST")
def account_list(request, owner):
    if request.method == "POST":
        return _ok(_account_dict(account_service.create_account(owner, _body(request))), 201)
    accounts = Account.objects.for_owner(owner).order_by("account_number")
    return _ok([_account_dict(a) for a in accounts])


@api_view("GET", "PUT", "DELETE")
def account_detail(request, owner, account_id):
    if request.method == "PUT":
        return _ok(_account_dict(account_service.update_account(owner, account_id, _body(request))))
    if request.method == "DELETE":
        account_service.delete_account(owner, account_id)
        return _ok(None)
    return _ok(_account_dict(get_owned(Account, owner, account_id, "Account")))


# ---------- gl mappings ----------
@api_view("GET", "POST")
def gl_mapping_list(request, owner):
    if request.method == "POST":
        return _ok(_mapping_dict(account_service.create_gl_mapping(owner, _body(request))), 201)
    return _ok([_mapping_dict(m) for m in GLMapping.objects.for_owner(owner)])


@api_view("DELETE")
def gl_mapping_detail(request, owner, mapping_id):
    account_service.delete_gl_mapping(owner, mapping_id)
    return _ok(None)


# ---------- vouchers ----------
@api_view("GET", "POST")
def voucher_list(request, owner):
    if request.method == "POST":
        data = _body(request)
        voucher = voucher_service.create_voucher(owner, data, data.get("lines") or [])
        return _ok(_voucher_dict(voucher, with_lines=True), 201)
    vouchers = Voucher.objects.for_owner(owner).order_by("-voucher_date", "-pk")
    status = request.GET.get("status")
    if status:
        vouchers = vouchers.filter(status=status)
    return _ok([_voucher_dict(v) for v in vouchers])


@api_view("GET", "PUT", "DELETE")
def voucher_detail(request, owner, voucher_id):
    if request.method == "PUT":
        data = _body(request)
        voucher = voucher_service.update_voucher(owner, voucher_id, data, data.get("lines") or [])
        return _ok(_voucher_dict(voucher, with_lines=True))
    if request.method == "DELETE":
        voucher_service.delete_voucher(owner, voucher_id)
        return _ok(None)
    return _ok(_voucher_dict(get_owned(Voucher, owner, voucher_id, "Voucher"), with_lines=True))


@api_view("POST")
def voucher_void(request, owner, voucher_id):
    return _ok(_voucher_dict(voucher_service.void_voucher(owner, voucher_id)))


@api_view("GET")
def voucher_pending(request, owner):
    rows = payment_service.pending_vouchers(owner, request.GET.get("search", ""))
    return _ok([r.to_dict() for r in rows])


@api_view("GET")
def voucher_next_number(request, owner):
    return _ok({"voucherNumber": voucher_service.next_voucher_number(owner)})


# ---------- payments ----------
@api_view("GET", "POST")
def payment_list(request, owner):
    if request.method == "POST":
        data, attachments = _payload(request)
        payment = payment_service.record_payment(owner, data, data.get("lines") or [], attachments)
        return _ok(_payment_dict(payment, with_lines=True), 201)
    payments = Payment.objects.for_owner(owner).order_by("-payment_date", "-pk")
    return _ok([_payment_dict(p) for p in payments])


@api_view("GET", "PUT", "DELETE")
def payment_detail(request, owner, payment_id):
    if request.method == "PUT":
        data, attachments = _payload(request)
        payment = payment_service.update_payment(owner, payment_id, data, data.get("lines") or [], attachments)
        return _ok(_payment_dict(payment, with_lines=True))
    if request.method == "DELETE":
        payment_service.delete_payment(owner, payment_id)
        return _ok(None)
    return _ok(_payment_dict(get_owned(Payment, owner, payment_id, "Payment"), with_lines=True))


@api_view("GET")
def payment_next_number(request, owner):
    on_date = _query_date(request, "date", required=False)
    return _ok({"paymentNumber": payment_service.next_payment_number(owner, on_date)})


# ---------- receipts ----------
@api_view("GET", "POST")
def receipt_list(request, owner):
    if request.method == "POST":
        return _ok(_receipt_dict(receipt_service.create_receipt(owner, _body(request))), 201)
    return _ok([_receipt_dict(r) for r in Receipt.objects.for_owner(owner)])


@api_view("GET", "PUT", "DELETE")
def receipt_detail(request, owner, receipt_id):
    if request.method == "PUT":
        data = _body(request)
        receipt = receipt_service.update_receipt(owner, receipt_id, data, data.get("updated_at"))
        return _ok(_receipt_dict(receipt))
    if request.method == "DELETE":
        receipt_service.delete_receipt(owner, receipt_id)
        return _ok(None)
    return _ok(_receipt_dict(get_owned(Receipt, owner, receipt_id, "Receipt")))


@api_view("GET")
def receipt_next_number(request, owner):
    on_date = _query_date(request, "date", required=False)
    return _ok({"receiptNumber": receipt_service.next_receipt_number(owner, on_date)})


# ---------- reports ----------
@api_view("GET")
def general_ledger_report(request, owner):
    report = general_ledger(
        owner,
        _query_date(request, "fromDate"),
        _query_date(request, "toDate"),
        request.GET.get("accountId") or None,
    )
    return _ok(report.to_dict())


@api_view("GET")
def trial_balance_report(request, owner):
    return _ok(trial_balance(owner, _query_date(request, "asOfDate")).to_dict())


@api_view("GET")
def account_ledger_report(request, owner, account_id):
    report = account_ledger(owner, account_id, _query_date(request, "fromDate"), _query_date(request, "toDate"))
    return _ok(report.to_dict())


@api_view("GET")
def income_statement_report(request, owner):
    report = income_statement(owner, _query_date(request, "fromDate"), _query_date(request, "toDate"))
    return _ok(report.to_dict())


@api_view("GET")
def profit_loss_report(request, owner):
    report = profit_loss(
        owner,
        _query_date(request, "fromDate"),
        _query_date(request, "toDate"),
        request.GET.get("comparison") or None,
    )
    return _ok(report.to_dict())


@api_view("GET")
def balance_sheet_report(request, owner):
    return _ok(balance_sheet(owner, _query_date(request, "asOfDate")).to_dict())


@api_view("GET")
def dashboard_report(request, owner):
    return _ok(summary.dashboard(owner, _query_date(request, "asOfDate", required=False)).to_dict())


@api_view("GET")
def account_distribution_report(request, owner):
    return _ok(summary.account_distribution(owner, _query_date(request, "asOfDate")).to_dict())


@api_view("GET")
def monthly_trends_report(request, owner):
    points = summary.monthly_trends(owner, request.GET.get("months", 12))
    return _ok([p.to_dict() for p in points])


@api_view("GET")
def cash_flow_report(request, owner):
    points = summary.cash_flow(owner, request.GET.get("months", 6))
    return _ok([p.to_dict() for p in points])


@api_view("GET")
def top_accounts_report(request, owner):
    report = summary.top_accounts(
        owner, request.GET.get("accountType", "Expense"), request.GET.get("count", 10)
    )
    return _ok(report.to_dict())


@api_view("GET")
def transaction_volume_report(request, owner):
    report = summary.transaction_volume(
        owner, request.GET.get("months", 12), request.GET.get("metric", summary.METRIC_COUNT)
    )
    return _ok(report.to_dict())


@api_view("GET")
def financial_summary_report(request, owner):
    report = summary.financial_summary(owner, _query_date(request, "fromDate"), _query_date(request, "toDate"))
    return _ok(report.to_dict())
