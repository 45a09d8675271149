"""
Lines of credit (LoC).

Supported operations:
- list all lines of credit, or those of a client or group
- get one line of credit
- list the loan and savings accounts of a line of credit
- add accounts to, and remove accounts from, a line of credit
"""

from typing import List, Optional

from mambu_client.api.definitions import ApiDefinition, CallArguments, OperationKind
from mambu_client.api.executor import ServiceExecutor
from mambu_client.domain.exceptions import InvalidUrlComposition
from mambu_client.domain.models import (
    AccountsFromLineOfCredit,
    AccountType,
    LineOfCredit,
    LineOfCreditExpanded,
    LoanAccount,
    SavingsAccount,
)
from mambu_client.domain.resources import EntityKind

SERVICE_ENTITY = EntityKind.LINE_OF_CREDIT

GET_LINE_OF_CREDIT = ApiDefinition(OperationKind.GET_ENTITY, SERVICE_ENTITY, LineOfCreditExpanded)
GET_ACCOUNTS = ApiDefinition(
    OperationKind.GET_OWNED_LIST,
    SERVICE_ENTITY,
    AccountsFromLineOfCredit,
    owned_entity=EntityKind.LINE_OF_CREDIT_ACCOUNTS,
)
ADD_LOAN_ACCOUNT = ApiDefinition(
    OperationKind.POST_OWNED_ENTITY, SERVICE_ENTITY, LoanAccount, owned_entity=EntityKind.LOAN_ACCOUNT
)
ADD_SAVINGS_ACCOUNT = ApiDefinition(
    OperationKind.POST_OWNED_ENTITY, SERVICE_ENTITY, SavingsAccount, owned_entity=EntityKind.SAVINGS_ACCOUNT
)

ACCOUNT_KINDS = {
    AccountType.LOAN: EntityKind.LOAN_ACCOUNT,
    AccountType.SAVINGS: EntityKind.SAVINGS_ACCOUNT,
}


class LinesOfCreditService:
    """Line of credit operations"""

    def __init__(self, executor: ServiceExecutor):
        self.executor = executor

    def get_all_lines_of_credit(self, offset: Optional[int] = None, limit: Optional[int] = None) -> List[LineOfCredit]:
        """GET linesofcredit/ ; None offset/limit leave the server defaults"""
        return self.executor.get_paginated_list(SERVICE_ENTITY, LineOfCredit, offset, limit)

    def get_line_of_credit(self, line_of_credit_id: str) -> LineOfCredit:
        """GET linesofcredit/{id}, unwrapped from its {"lineOfCredit": ...} envelope"""
        expanded = self.executor.execute(GET_LINE_OF_CREDIT, CallArguments(primary_id=line_of_credit_id))
        return expanded.line_of_credit

    def get_lines_of_credit(
        self,
        customer_kind: EntityKind,
        customer_id: str,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[LineOfCredit]:
        """
        Lines of credit of a client or a group.

        Raises:
            UnsupportedRelationship: customer_kind is neither CLIENT nor GROUP
        """
        return self.executor.get_owned_entities(
            customer_kind, customer_id, SERVICE_ENTITY, LineOfCredit, offset, limit
        )

    def get_client_lines_of_credit(
        self, client_id: str, offset: Optional[int] = None, limit: Optional[int] = None
    ) -> List[LineOfCredit]:
        return self.get_lines_of_credit(EntityKind.CLIENT, client_id, offset, limit)

    def get_group_lines_of_credit(
        self, group_id: str, offset: Optional[int] = None, limit: Optional[int] = None
    ) -> List[LineOfCredit]:
        return self.get_lines_of_credit(EntityKind.GROUP, group_id, offset, limit)

    def get_accounts_for_line_of_credit(self, line_of_credit_id: str) -> AccountsFromLineOfCredit:
        """GET linesofcredit/{id}/accounts"""
        return self.executor.execute(GET_ACCOUNTS, CallArguments(primary_id=line_of_credit_id))

    def add_loan_account(self, line_of_credit_id: str, loan_account_id: str) -> LoanAccount:
        """POST linesofcredit/{id}/loans/{accountId}"""
        if loan_account_id is None:
            raise InvalidUrlComposition("Account id must not be None")
        return self.executor.execute(
            ADD_LOAN_ACCOUNT, CallArguments(primary_id=line_of_credit_id, owned_id=loan_account_id)
        )

    def add_savings_account(self, line_of_credit_id: str, savings_account_id: str) -> SavingsAccount:
        """POST linesofcredit/{id}/savings/{accountId}"""
        if savings_account_id is None:
            raise InvalidUrlComposition("Account id must not be None")
        return self.executor.execute(
            ADD_SAVINGS_ACCOUNT, CallArguments(primary_id=line_of_credit_id, owned_id=savings_account_id)
        )

    def delete_account(self, line_of_credit_id: str, account_type: AccountType, account_id: str) -> bool:
        """DELETE linesofcredit/{id}/loans|savings/{accountId}"""
        if account_type is None or account_id is None:
            raise InvalidUrlComposition(
                f"Account type and account id must not be None. Type={account_type} Id={account_id}"
            )
        return self.executor.delete_owned_entity(
            SERVICE_ENTITY, line_of_credit_id, ACCOUNT_KINDS[AccountType(account_type)], account_id
        )

    def delete_loan_account(self, line_of_credit_id: str, loan_account_id: str) -> bool:
        return self.delete_account(line_of_credit_id, AccountType.LOAN, loan_account_id)

    def delete_savings_account(self, line_of_credit_id: str, savings_account_id: str) -> bool:
        return self.delete_account(line_of_credit_id, AccountType.SAVINGS, savings_account_id)
