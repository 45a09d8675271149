"""Loan accounts, their sub-collections, state transitions and products"""

import json
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from mambu_client.api.collection_replacer import CollectionReplacer
from mambu_client.api.definitions import ApiDefinition, CallArguments, OperationKind, Pagination
from mambu_client.api.executor import ServiceExecutor
from mambu_client.api.params import ACTION_KEY, AMOUNT, DATE, NOTES, TYPE, encode_value
from mambu_client.domain.exceptions import InvalidUrlComposition
from mambu_client.domain.models import (
    CloserType,
    CustomFieldValue,
    DisbursementDetails,
    Guaranty,
    InvestorFund,
    LoanAccount,
    LoanProduct,
    LoanTranche,
    LoanTransaction,
)
from mambu_client.domain.resources import EntityKind
from mambu_client.domain.schedule import first_repayment_date_for

SERVICE_ENTITY = EntityKind.LOAN_ACCOUNT

# Filter fields
BRANCH_ID = "branchId"
CENTRE_ID = "centreId"
CREDIT_OFFICER_USER_NAME = "creditOfficerUsername"
ACCOUNT_STATE = "accountState"

# Action endpoints: POST loans/{id}/{action}
REQUEST_APPROVAL = "request-approval"
APPROVE = "approve"
UNDO_APPROVAL = "undo-approval"
CLOSE = "close"
LOCK = "lock"
UNLOCK = "unlock"
DISBURSE = "disburse"
UNDO_DISBURSEMENT = "undo-disbursement"
WRITE_OFF = "write-off"
REPAY = "repay"

CREATE_LOAN_ACCOUNT = ApiDefinition(OperationKind.POST_CREATE, SERVICE_ENTITY, LoanAccount)
PATCH_LOAN_ACCOUNT = ApiDefinition(OperationKind.PATCH_PARTIAL, SERVICE_ENTITY, bool)
SEARCH_LOAN_ACCOUNTS = ApiDefinition(
    OperationKind.GET_PAGINATED_LIST, SERVICE_ENTITY, LoanAccount, result_is_list=True
)
ACCOUNT_ACTION = ApiDefinition(OperationKind.POST_ACTION, SERVICE_ENTITY, LoanAccount)
TRANSACTION_ACTION = ApiDefinition(OperationKind.POST_ACTION, SERVICE_ENTITY, LoanTransaction)
TRANSACTIONS_ACTION = ApiDefinition(
    OperationKind.POST_ACTION, SERVICE_ENTITY, LoanTransaction, result_is_list=True
)


class LoansService:
    """Loan account operations"""

    def __init__(self, executor: ServiceExecutor):
        self.executor = executor
        self.tranches = CollectionReplacer(executor, SERVICE_ENTITY, EntityKind.LOAN_TRANCHE, LoanAccount)
        self.funds = CollectionReplacer(executor, SERVICE_ENTITY, EntityKind.INVESTOR_FUND, LoanAccount)
        self.guarantees = CollectionReplacer(executor, SERVICE_ENTITY, EntityKind.GUARANTY, LoanAccount)

    # Lookup

    def get_loan_account(self, account_id: str) -> LoanAccount:
        return self.executor.get_entity(SERVICE_ENTITY, account_id, LoanAccount)

    def get_loan_account_details(self, account_id: str) -> LoanAccount:
        """Account with tranches, funds, guarantees and custom fields"""
        return self.executor.get_entity(SERVICE_ENTITY, account_id, LoanAccount, full_details=True)

    def get_loan_accounts_by_branch_officer_state(
        self,
        branch_id: Optional[str] = None,
        centre_id: Optional[str] = None,
        credit_officer_username: Optional[str] = None,
        account_state: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[LoanAccount]:
        params = {
            BRANCH_ID: branch_id,
            CENTRE_ID: centre_id,
            CREDIT_OFFICER_USER_NAME: credit_officer_username,
            ACCOUNT_STATE: account_state,
        }
        return self.executor.execute(
            SEARCH_LOAN_ACCOUNTS, CallArguments(params=params, pagination=Pagination(offset, limit))
        )

    def get_loan_accounts_for_client(self, client_id: str) -> List[LoanAccount]:
        return self.executor.get_owned_entities(EntityKind.CLIENT, client_id, SERVICE_ENTITY, LoanAccount)

    def get_loan_accounts_for_group(self, group_id: str) -> List[LoanAccount]:
        return self.executor.get_owned_entities(EntityKind.GROUP, group_id, SERVICE_ENTITY, LoanAccount)

    def get_loan_account_transactions(
        self, account_id: str, offset: Optional[int] = None, limit: Optional[int] = None
    ) -> List[LoanTransaction]:
        return self.executor.get_owned_entities(
            SERVICE_ENTITY, account_id, EntityKind.LOAN_TRANSACTION, LoanTransaction, offset, limit
        )

    # Create / update / delete

    def create_loan_account(self, account: LoanAccount) -> LoanAccount:
        """POST loans/ with the account as JSON"""
        return self.executor.execute(CREATE_LOAN_ACCOUNT, CallArguments(body=account.to_json()))

    def patch_loan_account(self, account_id: str, account: LoanAccount) -> bool:
        """PATCH loans/{id}; only the fields set on ``account`` are sent"""
        return self.executor.execute(
            PATCH_LOAN_ACCOUNT,
            CallArguments(primary_id=account_id, body=account.to_json(exclude_unset=True)),
        )

    def delete_loan_account(self, account_id: str) -> bool:
        return self.executor.delete_entity(SERVICE_ENTITY, account_id)

    def update_loan_account_tranches(self, account_id: str, tranches: Sequence[LoanTranche]) -> LoanAccount:
        """Resend the full tranche set: keyed items updated, unkeyed created, missing keys deleted"""
        return self.tranches.replace(account_id, tranches)

    def update_loan_account_funds(self, account_id: str, funds: Sequence[InvestorFund]) -> LoanAccount:
        return self.funds.replace(account_id, funds)

    def update_loan_account_guarantees(self, account_id: str, guarantees: Sequence[Guaranty]) -> LoanAccount:
        return self.guarantees.replace(account_id, guarantees)

    # State transitions

    def request_approval(self, account_id: str, notes: Optional[str] = None) -> LoanAccount:
        """PARTIAL_APPLICATION -> PENDING_APPROVAL"""
        return self._action(ACCOUNT_ACTION, account_id, REQUEST_APPROVAL, {NOTES: notes})

    def approve(self, account_id: str, notes: Optional[str] = None) -> LoanAccount:
        return self._action(ACCOUNT_ACTION, account_id, APPROVE, {NOTES: notes})

    def undo_approve(self, account_id: str, notes: Optional[str] = None) -> LoanAccount:
        return self._action(ACCOUNT_ACTION, account_id, UNDO_APPROVAL, {NOTES: notes})

    def close(self, account_id: str, closer_type: CloserType, notes: Optional[str] = None) -> LoanAccount:
        """Close as REJECT, WITHDRAW or CLOSE"""
        if closer_type is None:
            raise InvalidUrlComposition("Closer type must not be None")
        return self._action(ACCOUNT_ACTION, account_id, CLOSE, {TYPE: CloserType(closer_type), NOTES: notes})

    def lock(self, account_id: str, notes: Optional[str] = None) -> List[LoanTransaction]:
        return self._action(TRANSACTIONS_ACTION, account_id, LOCK, {NOTES: notes})

    def unlock(self, account_id: str, notes: Optional[str] = None) -> List[LoanTransaction]:
        return self._action(TRANSACTIONS_ACTION, account_id, UNLOCK, {NOTES: notes})

    def disburse(
        self,
        account_id: str,
        amount: Optional[Decimal] = None,
        disbursement_details: Optional[DisbursementDetails] = None,
        custom_fields: Optional[Sequence[CustomFieldValue]] = None,
        notes: Optional[str] = None,
    ) -> LoanTransaction:
        """
        Disburse with a JSON body.

        Amount is only needed for revolving credit products; tranched loans
        disburse their next tranche.
        """
        payload: Dict[str, Any] = {"type": "DISBURSEMENT"}
        if amount is not None:
            payload[AMOUNT] = encode_value(amount)
        if disbursement_details is not None:
            payload["disbursementDetails"] = disbursement_details.to_wire()
        if custom_fields:
            payload["customInformation"] = [field.to_wire() for field in custom_fields]
        if notes is not None:
            payload[NOTES] = notes
        return self._action(TRANSACTION_ACTION, account_id, DISBURSE, body=json.dumps(payload))

    def undo_disburse(self, account_id: str, notes: Optional[str] = None) -> LoanTransaction:
        return self._action(TRANSACTION_ACTION, account_id, UNDO_DISBURSEMENT, {NOTES: notes})

    def write_off(self, account_id: str, notes: Optional[str] = None) -> LoanTransaction:
        return self._action(TRANSACTION_ACTION, account_id, WRITE_OFF, {NOTES: notes})

    def repay(
        self,
        account_id: str,
        amount: Decimal,
        repayment_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> LoanTransaction:
        return self._action(
            TRANSACTION_ACTION,
            account_id,
            REPAY,
            {AMOUNT: amount, DATE: repayment_date, NOTES: notes},
        )

    # Products

    def get_loan_products(self, offset: Optional[int] = None, limit: Optional[int] = None) -> List[LoanProduct]:
        return self.executor.get_paginated_list(EntityKind.LOAN_PRODUCT, LoanProduct, offset, limit)

    def get_loan_product(self, product_id: str) -> LoanProduct:
        return self.executor.get_entity(EntityKind.LOAN_PRODUCT, product_id, LoanProduct)

    @staticmethod
    def first_repayment_date_for(
        account: LoanAccount,
        product: LoanProduct,
        is_local_midnight: bool = False,
        today: Optional[date] = None,
        local_tz: Optional[tzinfo] = None,
    ) -> datetime:
        """First repayment date for disbursing ``account`` under ``product``"""
        return first_repayment_date_for(account, product, is_local_midnight, today, local_tz)

    def _action(
        self,
        definition: ApiDefinition,
        account_id: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[str] = None,
    ) -> Any:
        args = CallArguments(primary_id=account_id, params={ACTION_KEY: action, **(params or {})}, body=body)
        return self.executor.execute(definition, args)
