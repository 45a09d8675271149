"""
In-memory stand-in for the platform REST API.

Serves the subset of endpoints the SDK talks to, with the same JSON
shapes, return-code error payloads, account state machine and
replace-by-resend semantics for loan sub-collections. Each create_app()
call gets its own store.
"""

import copy
import itertools
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

SUCCESS = {"returnCode": 0, "returnStatus": "SUCCESS"}

COLLECTIONS = ("tranches", "funds", "guarantees")
DEFAULT_LIMIT = 50


class PlatformError(Exception):
    """Rejected request rendered as a return-code payload"""

    def __init__(self, status_code: int, return_code: int, return_status: str):
        self.status_code = status_code
        self.return_code = return_code
        self.return_status = return_status


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_key() -> str:
    return uuid.uuid4().hex


class PlatformStore:
    """Entities held as wire-shaped dicts"""

    def __init__(self):
        self.clients: Dict[str, dict] = {}
        self.groups: Dict[str, dict] = {}
        self.loans: Dict[str, dict] = {}
        self.savings: Dict[str, dict] = {}
        self.lines_of_credit: Dict[str, dict] = {}
        self.products: Dict[str, dict] = {}
        self.transactions: Dict[str, List[dict]] = {}
        self.replace_log: List[dict] = []
        self._ids = itertools.count(100)
        self._transaction_ids = itertools.count(1)

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def find(self, table: Dict[str, dict], entity_id: str, code: int, status: str) -> dict:
        """Look up by id or encoded key"""
        for entity in table.values():
            if entity.get("id") == entity_id or entity.get("encodedKey") == entity_id:
                return entity
        raise PlatformError(404, code, status)

    def add(self, table: Dict[str, dict], entity: dict) -> dict:
        table[entity["encodedKey"]] = entity
        return entity

    def record_transaction(self, loan: dict, transaction_type: str, amount: Any = "0") -> dict:
        transaction = {
            "encodedKey": _new_key(),
            "transactionId": next(self._transaction_ids),
            "type": transaction_type,
            "amount": str(amount),
            "balance": loan.get("loanAmount", "0"),
            "parentAccountKey": loan["encodedKey"],
            "entryDate": _now(),
        }
        self.transactions.setdefault(loan["encodedKey"], []).append(transaction)
        return transaction


def seed(store: PlatformStore) -> PlatformStore:
    """Two clients, a group, products, lines of credit, a savings account and a tranched loan"""
    ada = store.add(store.clients, {
        "encodedKey": "8a8e867271bd280c0171bf7e4ec71b01", "id": "CL-001",
        "firstName": "Ada", "lastName": "Lovelace", "birthDate": "1985-12-10",
        "state": "ACTIVE", "assignedBranchKey": "BR-1", "assignedUserKey": "officer.one",
        "idDocument": "DOC-1", "creationDate": "2024-01-02T09:00:00+00:00",
    })
    alan = store.add(store.clients, {
        "encodedKey": "8a8e867271bd280c0171bf7e4ec71b02", "id": "CL-002",
        "firstName": "Alan", "lastName": "Turing", "birthDate": "1982-06-23",
        "state": "ACTIVE", "assignedBranchKey": "BR-1", "assignedUserKey": "officer.two",
        "idDocument": "DOC-2", "creationDate": "2024-01-03T09:00:00+00:00",
    })
    store.add(store.clients, {
        "encodedKey": "8a8e867271bd280c0171bf7e4ec71b03", "id": "CL-003",
        "firstName": "Grace", "lastName": "Hopper", "birthDate": "1976-12-09",
        "state": "INACTIVE", "assignedBranchKey": "BR-2", "assignedUserKey": "officer.one",
        "idDocument": "DOC-3", "creationDate": "2024-01-04T09:00:00+00:00",
    })
    circle = store.add(store.groups, {
        "encodedKey": "8a8e867271bd280c0171bf7e4ec72g01", "id": "GR-001",
        "groupName": "Analytical Engine Circle", "assignedBranchKey": "BR-1",
        "assignedUserKey": "officer.one", "creationDate": "2024-01-05T09:00:00+00:00",
        "_members": [ada["encodedKey"], alan["encodedKey"]],
    })

    fixed_term = store.add(store.products, {
        "encodedKey": "lp-fixed", "id": "LP-FIXED", "productName": "Fixed Term",
        "loanProductType": "FIXED_TERM_LOAN", "activated": True,
        "scheduleDueDatesMethod": "INTERVAL", "repaymentPeriodUnit": "MONTHS",
        "defaultRepaymentPeriodCount": 1,
        "minFirstRepaymentDueDateOffset": 5, "maxFirstRepaymentDueDateOffset": 30,
    })
    store.add(store.products, {
        "encodedKey": "lp-tranched", "id": "LP-TRANCHED", "productName": "Tranched",
        "loanProductType": "TRANCHED_LOAN", "activated": True,
        "scheduleDueDatesMethod": "FIXED_DAYS_OF_MONTH", "repaymentPeriodUnit": "MONTHS",
    })
    store.add(store.products, {
        "encodedKey": "lp-revolving", "id": "LP-REVOLVING", "productName": "Revolving",
        "loanProductType": "REVOLVING_CREDIT", "activated": False,
        "scheduleDueDatesMethod": "NONE",
    })

    store.add(store.lines_of_credit, {
        "encodedKey": "loc-ada", "id": "LOC-001", "amount": "5000",
        "clientKey": ada["encodedKey"], "state": "ACTIVE",
        "startDate": "2024-01-10T00:00:00+00:00", "expireDate": "2026-01-10T00:00:00+00:00",
    })
    store.add(store.lines_of_credit, {
        "encodedKey": "loc-circle", "id": "LOC-002", "amount": "20000",
        "groupKey": circle["encodedKey"], "state": "ACTIVE",
        "startDate": "2024-02-01T00:00:00+00:00", "expireDate": "2026-02-01T00:00:00+00:00",
    })

    store.add(store.savings, {
        "encodedKey": "sav-ada", "id": "SAV-001", "name": "Ada Savings",
        "accountHolderKey": ada["encodedKey"], "accountHolderType": "CLIENT",
        "accountState": "ACTIVE", "balance": "1200",
    })

    store.add(store.loans, {
        "encodedKey": "loan-ada", "id": "LN-001", "loanName": "Engine Parts",
        "accountHolderKey": ada["encodedKey"], "accountHolderType": "CLIENT",
        "productTypeKey": fixed_term["encodedKey"], "loanAmount": "3000",
        "repaymentInstallments": 6, "repaymentPeriodCount": 1, "repaymentPeriodUnit": "MONTHS",
        "accountState": "PARTIAL_APPLICATION", "creationDate": "2024-03-01T09:00:00+00:00",
        "tranches": [
            {"encodedKey": "tr-1", "amount": "1000", "expectedDisbursementDate": "2024-03-10T00:00:00+00:00", "index": 0},
            {"encodedKey": "tr-2", "amount": "2000", "expectedDisbursementDate": "2024-04-10T00:00:00+00:00", "index": 1},
        ],
        "funds": [
            {"encodedKey": "fund-1", "type": "INVESTOR", "amount": "500",
             "guarantorKey": alan["encodedKey"], "savingsAccountKey": "sav-ada"},
        ],
        "guarantees": [
            {"encodedKey": "gua-1", "type": "ASSET", "assetName": "Difference Engine", "amount": "800"},
        ],
    })
    return store


def _page(items: List[dict], request: Request) -> List[dict]:
    offset = int(request.query_params.get("offset", 0))
    limit = int(request.query_params.get("limit", DEFAULT_LIMIT))
    return items[offset:offset + limit]


def _public(entity: dict) -> dict:
    return {k: v for k, v in entity.items() if not k.startswith("_")}


def _matches(entity: dict, filters: Dict[str, Optional[str]]) -> bool:
    return all(value is None or str(entity.get(field)) == value for field, value in filters.items())


async def _form(request: Request) -> Dict[str, str]:
    return dict(parse_qsl((await request.body()).decode("utf-8")))


async def _json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise PlatformError(400, 3, "INVALID_JSON_SYNTAX")


def create_app(store: Optional[PlatformStore] = None) -> FastAPI:
    """Create a stub platform app over its own (seeded) store"""
    store = store or seed(PlatformStore())
    app = FastAPI(title="Stub Lending Platform", version="1.0.0")
    app.state.store = store

    @app.exception_handler(PlatformError)
    async def platform_error_handler(request: Request, exc: PlatformError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"returnCode": exc.return_code, "returnStatus": exc.return_status},
        )

    def find_client(client_id: str) -> dict:
        return store.find(store.clients, client_id, 100, "INVALID_CLIENT_ID")

    def find_group(group_id: str) -> dict:
        return store.find(store.groups, group_id, 200, "INVALID_GROUP_ID")

    def find_loan(loan_id: str) -> dict:
        return store.find(store.loans, loan_id, 101, "INVALID_LOAN_ACCOUNT_ID")

    def find_savings(savings_id: str) -> dict:
        return store.find(store.savings, savings_id, 102, "INVALID_SAVINGS_ACCOUNT_ID")

    def find_line_of_credit(loc_id: str) -> dict:
        return store.find(store.lines_of_credit, loc_id, 902, "INVALID_LINE_OF_CREDIT_ID")

    def require_state(loan: dict, *states: str) -> None:
        if loan.get("accountState") not in states:
            raise PlatformError(400, 104, "INVALID_ACCOUNT_STATE")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Clients

    @app.get("/api/clients/")
    def list_clients(request: Request):
        q = request.query_params
        filters = {
            "firstName": q.get("firstName"),
            "lastName": q.get("lastName"),
            "birthDate": q.get("birthdate"),
            "idDocument": q.get("idDocument"),
            "assignedBranchKey": q.get("branchId"),
            "assignedUserKey": q.get("creditOfficerUsername"),
            "state": q.get("clientState"),
        }
        found = [_public(c) for c in store.clients.values() if _matches(c, filters)]
        return _page(found, request)

    @app.post("/api/clients/")
    async def create_client(request: Request):
        form = await _form(request)
        if not form.get("firstName") or not form.get("lastName"):
            raise PlatformError(400, 105, "INVALID_CLIENT_NAME")
        client = {
            "encodedKey": _new_key(),
            "id": store.next_id("CL"),
            "state": "PENDING_APPROVAL",
            "creationDate": _now(),
            **{key: value for key, value in form.items() if key != "birthdate"},
        }
        if "birthdate" in form:
            client["birthDate"] = form["birthdate"]
        store.add(store.clients, client)
        return _public(client)

    @app.get("/api/clients/{client_id}")
    def get_client(client_id: str, request: Request):
        client = _public(find_client(client_id))
        if request.query_params.get("fullDetails") == "true":
            return {
                "client": client,
                "addresses": [{"line1": "12 St James's Square", "city": "London", "country": "UK"}],
                "customInformation": [],
            }
        return client

    @app.get("/api/clients/{client_id}/linesofcredit")
    def client_lines_of_credit(client_id: str, request: Request):
        key = find_client(client_id)["encodedKey"]
        return _page([loc for loc in store.lines_of_credit.values() if loc.get("clientKey") == key], request)

    @app.get("/api/clients/{client_id}/loans")
    def client_loans(client_id: str, request: Request):
        key = find_client(client_id)["encodedKey"]
        return _page([loan for loan in store.loans.values() if loan.get("accountHolderKey") == key], request)

    # Groups

    @app.get("/api/groups/")
    def list_groups(request: Request):
        q = request.query_params
        filters = {
            "assignedBranchKey": q.get("branchId"),
            "assignedUserKey": q.get("creditOfficerUsername"),
        }
        return _page([_public(g) for g in store.groups.values() if _matches(g, filters)], request)

    @app.get("/api/groups/{group_id}")
    def get_group(group_id: str, request: Request):
        group = find_group(group_id)
        if request.query_params.get("fullDetails") == "true":
            return {
                "theGroup": _public(group),
                "groupMembers": [
                    {"clientKey": key, "groupKey": group["encodedKey"]} for key in group.get("_members", [])
                ],
                "addresses": [],
                "customInformation": [],
            }
        return _public(group)

    @app.get("/api/groups/{group_id}/linesofcredit")
    def group_lines_of_credit(group_id: str, request: Request):
        key = find_group(group_id)["encodedKey"]
        return _page([loc for loc in store.lines_of_credit.values() if loc.get("groupKey") == key], request)

    @app.get("/api/groups/{group_id}/loans")
    def group_loans(group_id: str, request: Request):
        key = find_group(group_id)["encodedKey"]
        return _page([loan for loan in store.loans.values() if loan.get("accountHolderKey") == key], request)

    # Lines of credit

    @app.get("/api/linesofcredit/")
    def list_lines_of_credit(request: Request):
        return _page(list(store.lines_of_credit.values()), request)

    @app.get("/api/linesofcredit/{loc_id}")
    def get_line_of_credit(loc_id: str):
        return {"lineOfCredit": find_line_of_credit(loc_id), "customFieldValues": []}

    @app.get("/api/linesofcredit/{loc_id}/accounts")
    def line_of_credit_accounts(loc_id: str):
        key = find_line_of_credit(loc_id)["encodedKey"]
        return {
            "loanAccounts": [loan for loan in store.loans.values() if loan.get("lineOfCreditKey") == key],
            "savingsAccounts": [acc for acc in store.savings.values() if acc.get("lineOfCreditKey") == key],
        }

    def attach(loc_id: str, account: dict) -> dict:
        loc = find_line_of_credit(loc_id)
        if account.get("lineOfCreditKey"):
            raise PlatformError(400, 904, "ACCOUNT_ALREADY_ON_ANOTHER_LINE_OF_CREDIT")
        account["lineOfCreditKey"] = loc["encodedKey"]
        return account

    def detach(loc_id: str, account: dict) -> dict:
        loc = find_line_of_credit(loc_id)
        if account.get("lineOfCreditKey") != loc["encodedKey"]:
            raise PlatformError(400, 905, "ACCOUNT_NOT_ON_LINE_OF_CREDIT")
        account.pop("lineOfCreditKey")
        return SUCCESS

    @app.post("/api/linesofcredit/{loc_id}/loans/{account_id}")
    def add_loan_to_line_of_credit(loc_id: str, account_id: str):
        return attach(loc_id, find_loan(account_id))

    @app.post("/api/linesofcredit/{loc_id}/savings/{account_id}")
    def add_savings_to_line_of_credit(loc_id: str, account_id: str):
        return attach(loc_id, find_savings(account_id))

    @app.delete("/api/linesofcredit/{loc_id}/loans/{account_id}")
    def remove_loan_from_line_of_credit(loc_id: str, account_id: str):
        return detach(loc_id, find_loan(account_id))

    @app.delete("/api/linesofcredit/{loc_id}/savings/{account_id}")
    def remove_savings_from_line_of_credit(loc_id: str, account_id: str):
        return detach(loc_id, find_savings(account_id))

    # Loans

    @app.get("/api/loans/")
    def list_loans(request: Request):
        q = request.query_params
        filters = {
            "accountState": q.get("accountState"),
            "assignedBranchKey": q.get("branchId"),
            "assignedCentreKey": q.get("centreId"),
            "assignedUserKey": q.get("creditOfficerUsername"),
        }
        return _page([loan for loan in store.loans.values() if _matches(loan, filters)], request)

    @app.post("/api/loans/")
    async def create_loan(request: Request):
        payload = await _json(request)
        holder_key = payload.get("accountHolderKey")
        holder_type = payload.get("accountHolderType", "CLIENT")
        holder = find_group(holder_key) if holder_type == "GROUP" else find_client(holder_key)
        product = store.find(store.products, payload.get("productTypeKey"), 103, "INVALID_PRODUCT_KEY")

        loan = copy.deepcopy(payload)
        loan.update({
            "encodedKey": _new_key(),
            "id": payload.get("id") or store.next_id("LN"),
            "accountHolderKey": holder["encodedKey"],
            "accountHolderType": holder_type,
            "productTypeKey": product["encodedKey"],
            "creationDate": _now(),
        })
        if loan.get("accountState") not in ("PARTIAL_APPLICATION", "PENDING_APPROVAL"):
            loan["accountState"] = "PARTIAL_APPLICATION"
        for collection in COLLECTIONS:
            loan[collection] = [dict(item, encodedKey=_new_key()) for item in loan.get(collection, [])]
        return store.add(store.loans, loan)

    @app.get("/api/loans/{loan_id}")
    def get_loan(loan_id: str):
        return find_loan(loan_id)

    @app.patch("/api/loans/{loan_id}")
    async def patch_loan(loan_id: str, request: Request):
        loan = find_loan(loan_id)
        require_state(loan, "PARTIAL_APPLICATION", "PENDING_APPROVAL")
        payload = await _json(request)
        protected = {"encodedKey", "id", "accountState", *COLLECTIONS}
        loan.update({key: value for key, value in payload.items() if key not in protected})
        loan["lastModifiedDate"] = _now()
        return SUCCESS

    @app.delete("/api/loans/{loan_id}")
    def delete_loan(loan_id: str):
        loan = find_loan(loan_id)
        require_state(loan, "PARTIAL_APPLICATION", "PENDING_APPROVAL")
        del store.loans[loan["encodedKey"]]
        return SUCCESS

    @app.get("/api/loans/{loan_id}/transactions")
    def loan_transactions(loan_id: str, request: Request):
        loan = find_loan(loan_id)
        return _page(store.transactions.get(loan["encodedKey"], []), request)

    @app.put("/api/loans/{loan_id}/{collection}")
    async def replace_collection(loan_id: str, collection: str, request: Request):
        if collection not in COLLECTIONS:
            raise PlatformError(404, 2, "INVALID_API_OPERATION")
        loan = find_loan(loan_id)
        payload = await _json(request)
        items = payload.get(collection) if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise PlatformError(400, 3, "INVALID_JSON_SYNTAX")

        current = {item["encodedKey"]: item for item in loan.get(collection, [])}
        resent_keys = [item["encodedKey"] for item in items if item.get("encodedKey")]
        unknown = [key for key in resent_keys if key not in current]
        if unknown:
            # Whole set rejected, nothing applied
            raise PlatformError(400, 906, "INVALID_ENCODED_KEY")

        replaced, created = [], []
        for item in items:
            if item.get("encodedKey"):
                replaced.append(dict(item))
            else:
                new_item = dict(item, encodedKey=_new_key())
                created.append(new_item["encodedKey"])
                replaced.append(new_item)

        store.replace_log.append({
            "collection": collection,
            "created": created,
            "updated": resent_keys,
            "deleted": [key for key in current if key not in resent_keys],
        })
        loan[collection] = replaced
        loan["lastModifiedDate"] = _now()
        return loan

    @app.post("/api/loans/{loan_id}/{action}")
    async def loan_action(loan_id: str, action: str, request: Request):
        loan = find_loan(loan_id)
        if request.headers.get("content-type", "").startswith("application/json"):
            fields = await _json(request)
        else:
            fields = await _form(request)

        if action == "request-approval":
            require_state(loan, "PARTIAL_APPLICATION")
            loan["accountState"] = "PENDING_APPROVAL"
            return loan
        if action == "approve":
            require_state(loan, "PENDING_APPROVAL")
            loan["accountState"] = "APPROVED"
            return loan
        if action == "undo-approval":
            require_state(loan, "APPROVED")
            loan["accountState"] = "PENDING_APPROVAL"
            return loan
        if action == "close":
            closer = fields.get("type")
            if closer == "REJECT":
                require_state(loan, "PENDING_APPROVAL")
                loan["accountState"] = "CLOSED_REJECTED"
            elif closer == "WITHDRAW":
                require_state(loan, "PARTIAL_APPLICATION", "PENDING_APPROVAL", "APPROVED")
                loan["accountState"] = "WITHDRAWN"
            elif closer == "CLOSE":
                require_state(loan, "ACTIVE", "ACTIVE_IN_ARREARS")
                loan["accountState"] = "CLOSED"
            else:
                raise PlatformError(400, 107, "INVALID_CLOSER_TYPE")
            return loan
        if action == "disburse":
            require_state(loan, "APPROVED", "ACTIVE")
            amount = fields.get("amount") or loan.get("loanAmount", "0")
            transaction = store.record_transaction(loan, "DISBURSMENT", amount)
            pending = [t for t in loan.get("tranches", []) if not t.get("disbursementTransactionKey")]
            if pending:
                pending[0]["disbursementTransactionKey"] = transaction["encodedKey"]
            if fields.get("disbursementDetails"):
                loan["disbursementDetails"] = fields["disbursementDetails"]
            loan["accountState"] = "ACTIVE"
            return transaction
        if action == "undo-disbursement":
            require_state(loan, "ACTIVE")
            loan["accountState"] = "APPROVED"
            for tranche in loan.get("tranches", []):
                tranche.pop("disbursementTransactionKey", None)
            return store.record_transaction(loan, "DISBURSMENT_ADJUSTMENT", loan.get("loanAmount", "0"))
        if action == "lock":
            require_state(loan, "ACTIVE", "ACTIVE_IN_ARREARS")
            loan["accountState"] = "LOCKED"
            return [store.record_transaction(loan, "INTEREST_LOCKED")]
        if action == "unlock":
            require_state(loan, "LOCKED")
            loan["accountState"] = "ACTIVE"
            return [store.record_transaction(loan, "INTEREST_UNLOCKED")]
        if action == "write-off":
            require_state(loan, "ACTIVE", "ACTIVE_IN_ARREARS", "LOCKED")
            loan["accountState"] = "CLOSED_WRITTEN_OFF"
            return store.record_transaction(loan, "WRITE_OFF", loan.get("loanAmount", "0"))
        if action == "repay":
            require_state(loan, "ACTIVE", "ACTIVE_IN_ARREARS")
            try:
                amount = Decimal(fields.get("amount", ""))
            except ArithmeticError:
                raise PlatformError(400, 108, "INVALID_AMOUNT")
            return store.record_transaction(loan, "REPAYMENT", amount)

        raise PlatformError(404, 2, "INVALID_API_OPERATION")

    # Products

    @app.get("/api/loanproducts/")
    def list_products(request: Request):
        return _page(list(store.products.values()), request)

    @app.get("/api/loanproducts/{product_id}")
    def get_product(product_id: str):
        return store.find(store.products, product_id, 103, "INVALID_PRODUCT_KEY")

    return app


app = create_app()
