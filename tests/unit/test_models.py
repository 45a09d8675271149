"""Unit tests for domain records"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from mambu_client.domain.models import (
    AccountHolderType,
    ClientExpanded,
    GroupExpanded,
    LoanAccount,
    LoanTranche,
    RepaymentPeriodUnit,
)


def test_wire_names_are_camel_case():
    account = LoanAccount(
        account_holder_key="k1",
        account_holder_type=AccountHolderType.CLIENT,
        loan_amount=Decimal("2500.00"),
        repayment_period_unit=RepaymentPeriodUnit.MONTHS,
    )

    wire = json.loads(account.to_json())

    assert wire["accountHolderKey"] == "k1"
    assert wire["accountHolderType"] == "CLIENT"
    assert wire["loanAmount"] == "2500.00"
    assert wire["repaymentPeriodUnit"] == "MONTHS"


def test_unset_fields_are_not_sent():
    wire = LoanAccount(id="LN-1").to_wire()

    assert "encodedKey" not in wire
    assert "accountState" not in wire
    assert wire["id"] == "LN-1"


def test_populate_by_wire_name_or_field_name():
    by_alias = LoanTranche.model_validate({"encodedKey": "t1", "amount": "10"})
    by_name = LoanTranche(encoded_key="t1", amount=Decimal("10"))

    assert by_alias == by_name


def test_json_round_trip():
    account = LoanAccount(
        id="LN-1",
        loan_amount=Decimal("3000"),
        tranches=[LoanTranche(encoded_key="t1", amount=Decimal("1000"), index=0)],
        creation_date=datetime(2024, 3, 1, 9, tzinfo=timezone.utc),
    )

    assert LoanAccount.model_validate_json(account.to_json()) == account


def test_disbursed_and_pending_tranches():
    account = LoanAccount(
        tranches=[
            LoanTranche(encoded_key="t1", disbursement_transaction_key="tx1"),
            LoanTranche(encoded_key="t2"),
            LoanTranche(encoded_key="t3"),
        ]
    )

    assert [t.encoded_key for t in account.disbursed_tranches] == ["t1"]
    assert [t.encoded_key for t in account.non_disbursed_tranches] == ["t2", "t3"]


def test_expanded_envelopes():
    client = ClientExpanded.model_validate(
        {"client": {"id": "CL-001"}, "addresses": [{"city": "London"}], "customInformation": []}
    )
    group = GroupExpanded.model_validate(
        {"theGroup": {"groupName": "Circle"}, "groupMembers": [{"clientKey": "k1"}]}
    )

    assert client.client.id == "CL-001"
    assert client.addresses[0].city == "London"
    assert group.the_group.group_name == "Circle"
    assert group.group_members[0].client_key == "k1"
