"""Clients and groups: lookup, search and creation"""

from datetime import date
from typing import List, Optional

from mambu_client.api.definitions import ApiDefinition, CallArguments, OperationKind, Pagination
from mambu_client.api.executor import ServiceExecutor
from mambu_client.domain.models import Client, ClientExpanded, Group, GroupExpanded
from mambu_client.domain.resources import EntityKind

# Client search and create fields
FIRST_NAME = "firstName"
LAST_NAME = "lastName"
HOME_PHONE = "homePhone"
MOBILE_PHONE = "mobilePhone1"
GENDER = "gender"
BIRTH_DATE = "birthdate"
EMAIL_ADDRESS = "emailAddress"
ID_DOCUMENT = "idDocument"
NOTES = "notes"

BRANCH_ID = "branchId"
CREDIT_OFFICER_USER_NAME = "creditOfficerUsername"
CLIENT_STATE = "clientState"

SEARCH_CLIENTS = ApiDefinition(OperationKind.GET_PAGINATED_LIST, EntityKind.CLIENT, Client, result_is_list=True)
SEARCH_GROUPS = ApiDefinition(OperationKind.GET_PAGINATED_LIST, EntityKind.GROUP, Group, result_is_list=True)
CREATE_CLIENT = ApiDefinition(OperationKind.POST_CREATE, EntityKind.CLIENT, Client)


class ClientsService:
    """Client and group operations"""

    def __init__(self, executor: ServiceExecutor):
        self.executor = executor

    def get_client(self, client_id: str) -> Client:
        """GET clients/{id}"""
        return self.executor.get_entity(EntityKind.CLIENT, client_id, Client)

    def get_client_details(self, client_id: str) -> ClientExpanded:
        """Client with addresses and custom fields (fullDetails=true)"""
        return self.executor.get_entity(EntityKind.CLIENT, client_id, ClientExpanded, full_details=True)

    def get_clients_by_full_name(self, last_name: str, first_name: str) -> List[Client]:
        return self._search_clients({LAST_NAME: last_name, FIRST_NAME: first_name})

    def get_clients_by_last_name_birthday(self, last_name: str, birth_date: date) -> List[Client]:
        return self._search_clients({LAST_NAME: last_name, BIRTH_DATE: birth_date})

    def get_clients_by_last_name_document(self, last_name: str, document_id: str) -> List[Client]:
        return self._search_clients({LAST_NAME: last_name, ID_DOCUMENT: document_id})

    def get_clients_by_branch_officer_state(
        self,
        branch_id: Optional[str] = None,
        credit_officer_username: Optional[str] = None,
        client_state: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Client]:
        """Filter clients; unset filters are not sent"""
        params = {
            BRANCH_ID: branch_id,
            CREDIT_OFFICER_USER_NAME: credit_officer_username,
            CLIENT_STATE: client_state,
        }
        return self._search_clients(params, Pagination(offset, limit))

    def create_client(
        self,
        first_name: str,
        last_name: str,
        home_phone: Optional[str] = None,
        mobile_phone: Optional[str] = None,
        gender: Optional[str] = None,
        birth_date: Optional[date] = None,
        email: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Client:
        """Create a client from form fields (POST clients/)"""
        params = {
            FIRST_NAME: first_name,
            LAST_NAME: last_name,
            HOME_PHONE: home_phone,
            MOBILE_PHONE: mobile_phone,
            GENDER: gender,
            BIRTH_DATE: birth_date,
            EMAIL_ADDRESS: email,
            NOTES: notes,
        }
        return self.executor.execute(CREATE_CLIENT, CallArguments(params=params))

    def get_group(self, group_id: str) -> Group:
        return self.executor.get_entity(EntityKind.GROUP, group_id, Group)

    def get_group_details(self, group_id: str) -> GroupExpanded:
        return self.executor.get_entity(EntityKind.GROUP, group_id, GroupExpanded, full_details=True)

    def get_groups_by_branch_officer(
        self,
        branch_id: Optional[str] = None,
        credit_officer_username: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Group]:
        params = {BRANCH_ID: branch_id, CREDIT_OFFICER_USER_NAME: credit_officer_username}
        return self.executor.execute(SEARCH_GROUPS, CallArguments(params=params, pagination=Pagination(offset, limit)))

    def _search_clients(self, params: dict, pagination: Optional[Pagination] = None) -> List[Client]:
        return self.executor.execute(SEARCH_CLIENTS, CallArguments(params=params, pagination=pagination))
