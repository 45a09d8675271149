"""
E2E tests for loan officer workflows against the stub platform.

Each scenario drives the SDK the way a back-office integration would,
wired through the dependency factories over real HTTP.

Workflows:
- new_client_tranched_loan: onboard a client, open a tranched loan, reshape
  its tranches, approve and disburse
- group_line_of_credit: attach a group's loan to the group's line of credit
- investor_funding: replace funds and guarantees by resending the full set
- rejected_application: request approval, then reject
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from fastapi.testclient import TestClient
from mambu_client.api.dependencies import (
    get_clients_service,
    get_lines_of_credit_service,
    get_loans_service,
    get_service_executor,
)
from mambu_client.domain.exceptions import ApiCallError
from mambu_client.domain.models import (
    AccountHolderType,
    AccountState,
    CloserType,
    DisbursementDetails,
    Guaranty,
    GuarantyType,
    InvestorFund,
    LoanAccount,
    LoanTranche,
)
from mambu_client.infrastructure.clients.transport import HttpTransport
from tests.fakes import STUB_BASE_URL


@pytest.fixture
def executor(stub_client: TestClient):
    return get_service_executor(HttpTransport(client=stub_client), base_url=STUB_BASE_URL)


@pytest.mark.integration
def test_new_client_tranched_loan(executor, stub_store):
    """
    new_client_tranched_loan: onboarding through first disbursement
    Expected: tranche keys assigned by the platform, first tranche disbursed
    """
    clients = get_clients_service(executor)
    loans = get_loans_service(executor)

    client = clients.create_client("Mary", "Somerville", birth_date=date(1780, 12, 26))
    product = loans.get_loan_product("LP-TRANCHED")

    account = loans.create_loan_account(
        LoanAccount(
            account_holder_key=client.encoded_key,
            account_holder_type=AccountHolderType.CLIENT,
            product_type_key=product.encoded_key,
            loan_amount=Decimal("4000"),
            tranches=[
                LoanTranche(amount=Decimal("1000"), index=0),
                LoanTranche(amount=Decimal("3000"), index=1),
            ],
        )
    )
    assert all(t.encoded_key for t in account.tranches), "Platform assigns tranche keys"

    # Split the second tranche in two: keep the first, drop the second, add two new
    reshaped = loans.update_loan_account_tranches(
        account.id,
        [
            account.tranches[0],
            LoanTranche(amount=Decimal("1500"), index=1),
            LoanTranche(amount=Decimal("1500"), index=2),
        ],
    )
    assert len(reshaped.tranches) == 3
    assert reshaped.tranches[0].encoded_key == account.tranches[0].encoded_key
    assert account.tranches[1].encoded_key not in [t.encoded_key for t in reshaped.tranches]
    assert stub_store.replace_log[-1]["deleted"] == [account.tranches[1].encoded_key]

    loans.request_approval(account.id)
    loans.approve(account.id)

    first_repayment = loans.first_repayment_date_for(
        account.model_copy(update={"fixed_days_of_month": [15]}), product, today=date(2024, 6, 3)
    )
    assert first_repayment == datetime(2024, 7, 15, tzinfo=timezone.utc)

    disbursement = loans.disburse(
        account.id,
        disbursement_details=DisbursementDetails(first_repayment_date=first_repayment),
        notes="first tranche",
    )
    active = loans.get_loan_account(account.id)

    assert disbursement.parent_account_key == account.encoded_key
    assert active.account_state == AccountState.ACTIVE
    assert [t.encoded_key for t in active.disbursed_tranches] == [reshaped.tranches[0].encoded_key]
    assert len(active.non_disbursed_tranches) == 2
    assert active.disbursement_details.first_repayment_date == first_repayment

    assert [a.id for a in loans.get_loan_accounts_for_client(client.id)] == [account.id]


@pytest.mark.integration
def test_group_line_of_credit(executor):
    """
    group_line_of_credit: a group loan placed under the group's line of credit
    Expected: the loan is listed on the line, and removed again on request
    """
    clients = get_clients_service(executor)
    lines = get_lines_of_credit_service(executor)
    loans = get_loans_service(executor)

    group = clients.get_group_details("GR-001")
    line = lines.get_group_lines_of_credit(group.the_group.id)[0]

    account = loans.create_loan_account(
        LoanAccount(
            account_holder_key=group.the_group.encoded_key,
            account_holder_type=AccountHolderType.GROUP,
            product_type_key="lp-fixed",
            loan_amount=Decimal("12000"),
        )
    )

    lines.add_loan_account(line.id, account.id)
    assert [a.id for a in lines.get_accounts_for_line_of_credit(line.id).loan_accounts] == [account.id]
    assert [a.id for a in loans.get_loan_accounts_for_group(group.the_group.id)] == [account.id]

    assert lines.delete_loan_account(line.id, account.id) is True
    assert lines.get_accounts_for_line_of_credit(line.id).loan_accounts == []


@pytest.mark.integration
def test_investor_funding(executor, stub_store):
    """
    investor_funding: replace funds and guarantees as whole sets
    Expected: resent items keep their keys, new items get keys, missing items go
    """
    loans = get_loans_service(executor)
    account = loans.get_loan_account_details("LN-001")

    plan = loans.funds.preview(account, [InvestorFund(amount=Decimal("250"), savings_account_key="sav-ada")])
    assert plan.deleted_keys == ["fund-1"]
    assert len(plan.created) == 1

    funded = loans.update_loan_account_funds(
        account.id, [InvestorFund(amount=Decimal("250"), savings_account_key="sav-ada")]
    )
    assert [f.encoded_key for f in funded.funds] == stub_store.replace_log[-1]["created"]

    guaranteed = loans.update_loan_account_guarantees(
        account.id,
        funded.guarantees
        + [Guaranty(type=GuarantyType.GUARANTOR, guarantor_key=account.account_holder_key, amount=Decimal("400"))],
    )
    assert guaranteed.guarantees[0].encoded_key == "gua-1"
    assert guaranteed.guarantees[1].guarantor_key == account.account_holder_key
    assert loans.guarantees.preview(guaranteed, guaranteed.guarantees).membership_unchanged


@pytest.mark.integration
def test_rejected_application(executor):
    """
    rejected_application: application rejected after approval was requested
    Expected: account closed as rejected and no longer deletable
    """
    loans = get_loans_service(executor)

    loans.request_approval("LN-001", notes="ready for review")
    closed = loans.close("LN-001", CloserType.REJECT, notes="insufficient collateral")
    assert closed.account_state == AccountState.CLOSED_REJECTED

    with pytest.raises(ApiCallError) as exc_info:
        loans.delete_loan_account("LN-001")
    assert exc_info.value.message == "INVALID_ACCOUNT_STATE"
