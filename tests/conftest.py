"""Pytest fixtures for testing"""

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from mambu_client.api.executor import ServiceExecutor
from mambu_client.api.services.clients import ClientsService
from mambu_client.api.services.lines_of_credit import LinesOfCreditService
from mambu_client.api.services.loans import LoansService
from mambu_client.infrastructure.clients.transport import HttpTransport
from stub_platform.main import create_app
from tests.fakes import BASE_URL, STUB_BASE_URL, RecordingTransport


@pytest.fixture
def transport() -> RecordingTransport:
    """Fake transport with no queued responses"""
    return RecordingTransport()


@pytest.fixture
def executor(transport: RecordingTransport) -> ServiceExecutor:
    return ServiceExecutor(transport, base_url=BASE_URL)


@pytest.fixture
def stub_app():
    """Fresh stub platform with seeded clients, products and a tranched loan"""
    return create_app()


@pytest.fixture
def stub_client(stub_app) -> Generator[TestClient, None, None]:
    with TestClient(stub_app) as client:
        yield client


@pytest.fixture
def stub_store(stub_app):
    return stub_app.state.store


@pytest.fixture
def stub_executor(stub_client: TestClient) -> ServiceExecutor:
    """Executor speaking real HTTP to the stub platform"""
    return ServiceExecutor(HttpTransport(client=stub_client), base_url=STUB_BASE_URL)


@pytest.fixture
def clients_service(stub_executor: ServiceExecutor) -> ClientsService:
    return ClientsService(stub_executor)


@pytest.fixture
def lines_of_credit_service(stub_executor: ServiceExecutor) -> LinesOfCreditService:
    return LinesOfCreditService(stub_executor)


@pytest.fixture
def loans_service(stub_executor: ServiceExecutor) -> LoansService:
    return LoansService(stub_executor)
