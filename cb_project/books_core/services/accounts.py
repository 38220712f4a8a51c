import logging
from typing import Dict

from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import ConflictError
from ..models import Account, GLMapping
from ..signals import ensure_account_deletable
from .common import clean_text, get_owned, require_fields, require_owner

logger = logging.getLogger(__name__)


def _clean(owner, data: Dict, instance=None) -> Dict:
    # payloads echo the serializer's accountName
    if data.get("name") in (None, "") and "account_name" in data:
        data = dict(data, name=data["account_name"])
    require_fields(data, ("account_number", "name", "account_type"))
    fields = {
        "account_number": clean_text(data, "account_number"),
        "name": clean_text(data, "name"),
        "account_type": clean_text(data, "account_type"),
        "subaccount": clean_text(data, "subaccount"),
        "description": clean_text(data, "description"),
        "parent": None,
    }
    parent_id = data.get("parent_id", data.get("parent_account_id"))
    if parent_id not in (None, ""):
        if instance is not None and str(parent_id) == str(instance.pk):
            raise ValidationError("An account cannot be its own parent.")
        fields["parent"] = get_owned(Account, owner, parent_id, "Parent account")
    return fields


def _check_unique_number(owner, number, exclude=None):
    qs = Account.objects.for_owner(owner).filter(account_number=number)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise ConflictError("Account number already exists")


def create_account(owner, data: Dict) -> Account:
    require_owner(owner)
    fields = _clean(owner, data)
    with transaction.atomic():
        _check_unique_number(owner, fields["account_number"])
        account = Account(owner=owner, **fields)
        account.full_clean()
        account.save()
    logger.info("account %s created (%s)", account, account.account_class)
    return account


def update_account(owner, account_id, data: Dict) -> Account:
    require_owner(owner)
    account = get_owned(Account, owner, account_id, "Account")
    fields = _clean(owner, data, instance=account)
    with transaction.atomic():
        _check_unique_number(owner, fields["account_number"], exclude=account.pk)
        for name, value in fields.items():
            setattr(account, name, value)
        account.full_clean()
        account.save()
    logger.info("account %s updated", account)
    return account


def delete_account(owner, account_id):
    account = get_owned(Account, owner, account_id, "Account")
    label = str(account)
    ensure_account_deletable(account)
    account.delete()
    logger.info("account %s deleted", label)


def create_gl_mapping(owner, data: Dict) -> GLMapping:
    require_owner(owner)
    require_fields(data, ("transaction_type", "debit_account_id", "credit_account_id"))
    mapping = GLMapping(
        owner=owner,
        transaction_type=clean_text(data, "transaction_type"),
        debit_account=get_owned(Account, owner, data["debit_account_id"], "Debit account"),
        credit_account=get_owned(Account, owner, data["credit_account_id"], "Credit account"),
    )
    mapping.full_clean()
    mapping.save()
    logger.info("gl mapping %s created", mapping)
    return mapping


def delete_gl_mapping(owner, mapping_id):
    mapping = get_owned(GLMapping, owner, mapping_id, "GL mapping")
    mapping.delete()
