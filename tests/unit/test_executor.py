"""Unit tests for the service executor"""

import json
import logging
import pytest
from prometheus_client import REGISTRY
from mambu_client.api.definitions import ApiDefinition, CallArguments, HttpMethod, OperationKind, Pagination
from mambu_client.api.executor import ServiceExecutor, parse_error_payload
from mambu_client.domain.exceptions import (
    ApiCallError,
    InvalidUrlComposition,
    ResponseDecodeError,
    TransportError,
    UnsupportedRelationship,
)
from mambu_client.domain.models import Client, LineOfCredit, LoanAccount
from mambu_client.domain.resources import EntityKind
from mambu_client.infrastructure.clients.transport import UnsuccessfulResponse
from tests.fakes import BASE_URL, RecordingTransport

CLIENT_JSON = '{"encodedKey": "k1", "id": "CL-001", "firstName": "Ada", "lastName": "Lovelace"}'


def _requests_total(operation: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "mambu_api_requests_total",
        {"method": "GET", "operation": operation, "outcome": outcome},
    )
    return value or 0.0


def test_get_entity(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue(CLIENT_JSON)

    client = executor.get_entity(EntityKind.CLIENT, "CL-001", Client)

    assert client.last_name == "Lovelace"
    assert transport.last_call["url"] == f"{BASE_URL}/clients/CL-001"
    assert transport.last_call["method"] == HttpMethod.GET
    assert transport.last_call["params"] == ""
    assert transport.last_call["body"] is None


def test_get_entity_full_details(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue(CLIENT_JSON)

    executor.get_entity(EntityKind.CLIENT, "CL-001", Client, full_details=True)

    assert transport.last_call["params"] == "fullDetails=true"


def test_paginated_list(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue('[{"id": "LOC-1"}, {"id": "LOC-2"}]')

    lines = executor.get_paginated_list(EntityKind.LINE_OF_CREDIT, LineOfCredit, offset=0, limit=2)

    assert [line.id for line in lines] == ["LOC-1", "LOC-2"]
    assert transport.last_call["url"] == f"{BASE_URL}/linesofcredit/"
    assert transport.last_call["params"] == "offset=0&limit=2"


def test_empty_list(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue("[]")

    assert executor.get_owned_entities(EntityKind.CLIENT, "CL-001", EntityKind.LOAN_ACCOUNT, LoanAccount) == []
    assert transport.last_call["url"] == f"{BASE_URL}/clients/CL-001/loans"


def test_missing_owned_id_is_rejected_before_sending(executor: ServiceExecutor, transport: RecordingTransport):
    """GET_OWNED_ENTITY without an owned id never reaches the network"""
    definition = ApiDefinition(
        OperationKind.GET_OWNED_ENTITY, EntityKind.LINE_OF_CREDIT, LoanAccount, owned_entity=EntityKind.LOAN_ACCOUNT
    )

    with pytest.raises(InvalidUrlComposition):
        executor.execute(definition, CallArguments(primary_id="LOC-1"))

    assert transport.calls == []


def test_missing_primary_id(executor: ServiceExecutor, transport: RecordingTransport):
    definition = ApiDefinition(OperationKind.GET_ENTITY, EntityKind.CLIENT, Client)

    with pytest.raises(InvalidUrlComposition):
        executor.execute(definition, CallArguments())

    assert transport.calls == []


def test_forbidden_id_on_collection_root(executor: ServiceExecutor, transport: RecordingTransport):
    definition = ApiDefinition(OperationKind.POST_CREATE, EntityKind.CLIENT, Client)

    with pytest.raises(InvalidUrlComposition):
        executor.execute(definition, CallArguments(primary_id="CL-001"))

    assert transport.calls == []


def test_unsupported_relationship(executor: ServiceExecutor, transport: RecordingTransport):
    with pytest.raises(UnsupportedRelationship):
        executor.get_owned_entities(EntityKind.LOAN_PRODUCT, "LP-1", EntityKind.LINE_OF_CREDIT, LineOfCredit)

    assert transport.calls == []


def test_pagination_on_single_entity(executor: ServiceExecutor, transport: RecordingTransport):
    definition = ApiDefinition(OperationKind.GET_ENTITY, EntityKind.CLIENT, Client)

    with pytest.raises(InvalidUrlComposition):
        executor.execute(definition, CallArguments(primary_id="CL-001", pagination=Pagination(0, 10)))

    assert transport.calls == []


def test_patch_requires_body(executor: ServiceExecutor, transport: RecordingTransport):
    definition = ApiDefinition(OperationKind.PATCH_PARTIAL, EntityKind.LOAN_ACCOUNT, bool)

    with pytest.raises(InvalidUrlComposition):
        executor.execute(definition, CallArguments(primary_id="LN-1"))

    assert transport.calls == []


def test_action(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue('{"id": "LN-1", "accountState": "APPROVED"}')
    definition = ApiDefinition(OperationKind.POST_ACTION, EntityKind.LOAN_ACCOUNT, LoanAccount)

    account = executor.execute(
        definition,
        CallArguments(primary_id="LN-1", params={"_action": "approve", "notes": "ok", "date": None}),
    )

    assert account.account_state == "APPROVED"
    assert transport.last_call["url"] == f"{BASE_URL}/loans/LN-1/approve"
    assert transport.last_call["method"] == HttpMethod.POST
    assert transport.last_call["params"] == "notes=ok"


def test_action_name_is_required(executor: ServiceExecutor, transport: RecordingTransport):
    definition = ApiDefinition(OperationKind.POST_ACTION, EntityKind.LOAN_ACCOUNT, LoanAccount)

    with pytest.raises(InvalidUrlComposition):
        executor.execute(definition, CallArguments(primary_id="LN-1", params={"notes": "ok"}))

    assert transport.calls == []


def test_action_name_only_for_actions(executor: ServiceExecutor, transport: RecordingTransport):
    definition = ApiDefinition(OperationKind.GET_ENTITY, EntityKind.LOAN_ACCOUNT, LoanAccount)

    with pytest.raises(InvalidUrlComposition):
        executor.execute(definition, CallArguments(primary_id="LN-1", params={"_action": "approve"}))

    assert transport.calls == []


def test_caller_params_are_not_mutated(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue('{"id": "LN-1"}')
    params = {"_action": "lock"}
    definition = ApiDefinition(OperationKind.POST_ACTION, EntityKind.LOAN_ACCOUNT, LoanAccount)

    executor.execute(definition, CallArguments(primary_id="LN-1", params=params))

    assert params == {"_action": "lock"}


def test_delete_returns_true(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue('{"returnCode": 0, "returnStatus": "SUCCESS"}')

    assert executor.delete_entity(EntityKind.LOAN_ACCOUNT, "LN-1") is True
    assert transport.last_call["method"] == HttpMethod.DELETE


def test_delete_owned_entity(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue('{"returnCode": 0, "returnStatus": "SUCCESS"}')

    assert executor.delete_owned_entity(EntityKind.LINE_OF_CREDIT, "LOC-1", EntityKind.LOAN_ACCOUNT, "LN-1")
    assert transport.last_call["url"] == f"{BASE_URL}/linesofcredit/LOC-1/loans/LN-1"


def test_platform_error_is_surfaced(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue(UnsuccessfulResponse(404, '{"returnCode": 101, "returnStatus": "INVALID_LOAN_ACCOUNT_ID"}'))

    with pytest.raises(ApiCallError) as exc_info:
        executor.get_entity(EntityKind.LOAN_ACCOUNT, "missing", LoanAccount)

    assert exc_info.value.code == 101
    assert exc_info.value.message == "INVALID_LOAN_ACCOUNT_ID"
    assert exc_info.value.status_code == 404
    assert len(transport.calls) == 1


def test_transport_error_propagates(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue(TransportError("connection refused"))

    with pytest.raises(TransportError):
        executor.get_entity(EntityKind.CLIENT, "CL-001", Client)

    assert len(transport.calls) == 1


def test_decode_error_propagates(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue('{"firstName": ["not", "a", "name"]}')

    with pytest.raises(ResponseDecodeError):
        executor.get_entity(EntityKind.CLIENT, "CL-001", Client)


def test_parse_error_payload_with_error_source():
    body = json.dumps({"returnCode": 2, "returnStatus": "INVALID_PARAMETERS", "errorSource": "loanAmount"})

    error = parse_error_payload(400, body)

    assert error.code == 2
    assert error.message == "INVALID_PARAMETERS (loanAmount)"
    assert str(error) == "2: INVALID_PARAMETERS (loanAmount)"


def test_parse_error_payload_not_json():
    error = parse_error_payload(502, "<html>Bad Gateway</html>")

    assert error.code == 502
    assert error.message == "<html>Bad Gateway</html>"


@pytest.mark.parametrize("return_code", ["null", '"INVALID"', '{"nested": 1}', "false"])
def test_parse_error_payload_non_integer_return_code(return_code):
    body = f'{{"returnCode": {return_code}, "returnStatus": "ODD"}}'

    error = parse_error_payload(400, body)

    assert error.code == 400
    assert error.message == body


def test_malformed_error_body_still_raises_api_error(executor: ServiceExecutor, transport: RecordingTransport):
    transport.queue(UnsuccessfulResponse(400, '{"returnCode": null}'))

    with pytest.raises(ApiCallError) as exc_info:
        executor.get_entity(EntityKind.CLIENT, "CL-001", Client)

    assert exc_info.value.code == 400
    assert exc_info.value.status_code == 400


def test_parse_error_payload_empty_body():
    error = parse_error_payload(503, "")

    assert error.code == 503
    assert error.message == "HTTP 503"


def test_metrics_recorded_per_outcome(executor: ServiceExecutor, transport: RecordingTransport):
    success_before = _requests_total("GET_ENTITY", "success")
    error_before = _requests_total("GET_ENTITY", "api_error")
    transport.queue(CLIENT_JSON, UnsuccessfulResponse(500, "boom"))

    executor.get_entity(EntityKind.CLIENT, "CL-001", Client)
    with pytest.raises(ApiCallError):
        executor.get_entity(EntityKind.CLIENT, "CL-001", Client)

    assert _requests_total("GET_ENTITY", "success") == success_before + 1
    assert _requests_total("GET_ENTITY", "api_error") == error_before + 1


def test_call_is_logged(executor: ServiceExecutor, transport: RecordingTransport, caplog):
    caplog.set_level(logging.INFO, logger="mambu_client.api")
    transport.queue(UnsuccessfulResponse(400, '{"returnCode": 104, "returnStatus": "INVALID_ACCOUNT_STATE"}'))

    with pytest.raises(ApiCallError):
        executor.delete_entity(EntityKind.LOAN_ACCOUNT, "LN-1")

    records = [r for r in caplog.records if r.name == "mambu_client.api"]
    assert len(records) == 1
    assert records[0].levelno == logging.WARNING
    assert records[0].outcome == "api_error"
    assert records[0].operation == "DELETE_ENTITY"
    assert records[0].url == f"{BASE_URL}/loans/LN-1"
