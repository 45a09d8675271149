"""Factory functions wiring settings, transport, executor and services"""

from typing import Optional

from mambu_client.api.executor import ServiceExecutor
from mambu_client.api.services.clients import ClientsService
from mambu_client.api.services.lines_of_credit import LinesOfCreditService
from mambu_client.api.services.loans import LoansService
from mambu_client.config import settings
from mambu_client.infrastructure.clients.transport import HttpTransport, Transport


def get_transport() -> HttpTransport:
    """Provide an HTTP transport configured from settings"""
    return HttpTransport(
        timeout=settings.http_timeout_seconds,
        username=settings.username,
        password=settings.password,
        user_agent=settings.user_agent,
    )


def get_service_executor(transport: Optional[Transport] = None, base_url: Optional[str] = None) -> ServiceExecutor:
    """Provide a service executor; builds a transport from settings when none is given"""
    return ServiceExecutor(transport or get_transport(), base_url=base_url or settings.base_url)


def get_clients_service(executor: Optional[ServiceExecutor] = None) -> ClientsService:
    return ClientsService(executor or get_service_executor())


def get_lines_of_credit_service(executor: Optional[ServiceExecutor] = None) -> LinesOfCreditService:
    return LinesOfCreditService(executor or get_service_executor())


def get_loans_service(executor: Optional[ServiceExecutor] = None) -> LoansService:
    return LoansService(executor or get_service_executor())
