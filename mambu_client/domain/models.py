"""Domain models - pydantic records mirroring the platform's JSON entities"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class MambuModel(BaseModel):
    """Base record: camelCase on the wire, snake_case in Python, unknown fields ignored"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json(self, exclude_unset: bool = False) -> str:
        """Serialize by alias, leaving out None fields (and, for partial updates, fields never set)"""
        return self.model_dump_json(by_alias=True, exclude_none=True, exclude_unset=exclude_unset)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Enumerations


class AccountState(str, Enum):
    PARTIAL_APPLICATION = "PARTIAL_APPLICATION"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    ACTIVE_IN_ARREARS = "ACTIVE_IN_ARREARS"
    CLOSED = "CLOSED"
    CLOSED_WRITTEN_OFF = "CLOSED_WRITTEN_OFF"
    CLOSED_REJECTED = "CLOSED_REJECTED"
    WITHDRAWN = "WITHDRAWN"
    LOCKED = "LOCKED"


class AccountHolderType(str, Enum):
    CLIENT = "CLIENT"
    GROUP = "GROUP"


class AccountType(str, Enum):
    LOAN = "LOAN"
    SAVINGS = "SAVINGS"


class CloserType(str, Enum):
    """How a loan account is closed"""

    REJECT = "REJECT"
    WITHDRAW = "WITHDRAW"
    CLOSE = "CLOSE"


class GuarantyType(str, Enum):
    GUARANTOR = "GUARANTOR"
    ASSET = "ASSET"
    INVESTOR = "INVESTOR"


class LoanProductType(str, Enum):
    FIXED_TERM_LOAN = "FIXED_TERM_LOAN"
    DYNAMIC_TERM_LOAN = "DYNAMIC_TERM_LOAN"
    PAYMENT_PLAN = "PAYMENT_PLAN"
    TRANCHED_LOAN = "TRANCHED_LOAN"
    REVOLVING_CREDIT = "REVOLVING_CREDIT"


class RepaymentPeriodUnit(str, Enum):
    DAYS = "DAYS"
    WEEKS = "WEEKS"
    MONTHS = "MONTHS"
    YEARS = "YEARS"


class ScheduleDueDatesMethod(str, Enum):
    """Product policy deciding how repayment due dates are placed"""

    NONE = "NONE"
    INTERVAL = "INTERVAL"
    FIXED_DAYS_OF_MONTH = "FIXED_DAYS_OF_MONTH"


# Shared records


class CustomFieldValue(MambuModel):
    custom_field_id: Optional[str] = None
    value: Optional[str] = None
    linked_entity_key: Optional[str] = None


class Address(MambuModel):
    encoded_key: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


class ReturnStatus(MambuModel):
    """Status envelope returned by deletes and by every rejected call"""

    return_code: int
    return_status: str
    error_source: Optional[str] = None


# Customers


class Client(MambuModel):
    encoded_key: Optional[str] = None
    id: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    home_phone: Optional[str] = None
    mobile_phone1: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = None
    email_address: Optional[str] = None
    notes: Optional[str] = None
    state: Optional[str] = None
    assigned_branch_key: Optional[str] = None
    assigned_user_key: Optional[str] = None
    creation_date: Optional[datetime] = None
    last_modified_date: Optional[datetime] = None


class ClientExpanded(MambuModel):
    """Client with full details: addresses and custom fields"""

    client: Client
    addresses: List[Address] = []
    custom_information: List[CustomFieldValue] = []


class Group(MambuModel):
    encoded_key: Optional[str] = None
    id: Optional[str] = None
    group_name: Optional[str] = None
    notes: Optional[str] = None
    assigned_branch_key: Optional[str] = None
    assigned_user_key: Optional[str] = None
    creation_date: Optional[datetime] = None
    last_modified_date: Optional[datetime] = None


class GroupMember(MambuModel):
    client_key: str
    group_key: Optional[str] = None


class GroupExpanded(MambuModel):
    """Group with members, addresses and custom fields"""

    the_group: Group
    group_members: List[GroupMember] = []
    addresses: List[Address] = []
    custom_information: List[CustomFieldValue] = []


# Loan sub-collections. Each item's encoded_key is assigned by the server.


class LoanTranche(MambuModel):
    encoded_key: Optional[str] = None
    amount: Optional[Decimal] = None
    expected_disbursement_date: Optional[datetime] = None
    disbursement_transaction_key: Optional[str] = None
    index: Optional[int] = None


class InvestorFund(MambuModel):
    encoded_key: Optional[str] = None
    id: Optional[str] = None
    type: GuarantyType = GuarantyType.INVESTOR
    amount: Optional[Decimal] = None
    guarantor_key: Optional[str] = None
    savings_account_key: Optional[str] = None
    custom_field_values: List[CustomFieldValue] = []


class Guaranty(MambuModel):
    encoded_key: Optional[str] = None
    type: Optional[GuarantyType] = None
    guarantor_type: Optional[AccountHolderType] = None
    guarantor_key: Optional[str] = None
    savings_account_key: Optional[str] = None
    asset_name: Optional[str] = None
    amount: Optional[Decimal] = None
    custom_field_values: List[CustomFieldValue] = []


class DisbursementDetails(MambuModel):
    encoded_key: Optional[str] = None
    expected_disbursement_date: Optional[datetime] = None
    disbursement_date: Optional[datetime] = None
    first_repayment_date: Optional[datetime] = None
    custom_field_values: List[CustomFieldValue] = []


# Accounts


class LoanAccount(MambuModel):
    encoded_key: Optional[str] = None
    id: Optional[str] = None
    loan_name: Optional[str] = None
    account_holder_key: Optional[str] = None
    account_holder_type: Optional[AccountHolderType] = None
    product_type_key: Optional[str] = None
    loan_amount: Optional[Decimal] = None
    interest_rate: Optional[Decimal] = None
    repayment_installments: Optional[int] = None
    repayment_period_count: Optional[int] = None
    repayment_period_unit: Optional[RepaymentPeriodUnit] = None
    fixed_days_of_month: List[int] = []
    account_state: Optional[AccountState] = None
    account_sub_state: Optional[str] = None
    line_of_credit_key: Optional[str] = None
    notes: Optional[str] = None
    disbursement_details: Optional[DisbursementDetails] = None
    tranches: List[LoanTranche] = []
    funds: List[InvestorFund] = []
    guarantees: List[Guaranty] = []
    custom_field_values: List[CustomFieldValue] = []
    creation_date: Optional[datetime] = None
    last_modified_date: Optional[datetime] = None

    @property
    def disbursed_tranches(self) -> List[LoanTranche]:
        return [t for t in self.tranches if t.disbursement_transaction_key]

    @property
    def non_disbursed_tranches(self) -> List[LoanTranche]:
        return [t for t in self.tranches if not t.disbursement_transaction_key]


class SavingsAccount(MambuModel):
    encoded_key: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    account_holder_key: Optional[str] = None
    account_holder_type: Optional[AccountHolderType] = None
    product_type_key: Optional[str] = None
    account_state: Optional[AccountState] = None
    balance: Optional[Decimal] = None
    line_of_credit_key: Optional[str] = None
    creation_date: Optional[datetime] = None


class LineOfCredit(MambuModel):
    encoded_key: Optional[str] = None
    id: Optional[str] = None
    amount: Optional[Decimal] = None
    client_key: Optional[str] = None
    group_key: Optional[str] = None
    start_date: Optional[datetime] = None
    expire_date: Optional[datetime] = None
    state: Optional[str] = None
    notes: Optional[str] = None


class LineOfCreditExpanded(MambuModel):
    """Envelope returned by GET linesofcredit/{id}"""

    line_of_credit: LineOfCredit
    custom_field_values: List[CustomFieldValue] = []


class AccountsFromLineOfCredit(MambuModel):
    loan_accounts: List[LoanAccount] = []
    savings_accounts: List[SavingsAccount] = []


class LoanTransaction(MambuModel):
    encoded_key: Optional[str] = None
    transaction_id: Optional[int] = None
    type: Optional[str] = None
    amount: Optional[Decimal] = None
    balance: Optional[Decimal] = None
    parent_account_key: Optional[str] = None
    entry_date: Optional[datetime] = None
    comment: Optional[str] = None
    custom_field_values: List[CustomFieldValue] = []


class LoanProduct(MambuModel):
    encoded_key: Optional[str] = None
    id: Optional[str] = None
    product_name: Optional[str] = None
    loan_product_type: Optional[LoanProductType] = None
    activated: Optional[bool] = None
    schedule_due_dates_method: Optional[ScheduleDueDatesMethod] = None
    repayment_period_unit: Optional[RepaymentPeriodUnit] = None
    default_repayment_period_count: Optional[int] = None
    min_first_repayment_due_date_offset: Optional[int] = None
    max_first_repayment_due_date_offset: Optional[int] = None
