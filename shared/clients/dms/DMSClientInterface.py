from abc import abstractmethod
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.dms.models.Document import DocumentDetails, DocumentsListResponse
from shared.clients.dms.models.Relationship import Relationships
from shared.clients.dms.models.Upload import SignedDestination
from shared.clients.dms.models.Audit import AuditEvent
from shared.clients.dms.models.User import OrgUser


class DMSClientInterface(ClientInterface):
    """
    Org-scoped client for the document management backend.

    Every request takes the organization id explicitly; the client itself
    holds no notion of a "current" organization.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "dms"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upload_sign(self, org_id: str) -> str:
        """Returns the endpoint path for signing an upload (e.g. "/orgs/{org}/uploads/sign")."""
        pass

    @abstractmethod
    def _get_endpoint_upload_finalize(self, org_id: str) -> str:
        """Returns the endpoint path for binding a stored file to a pending record."""
        pass

    @abstractmethod
    def _get_endpoint_folders(self, org_id: str) -> str:
        """Returns the endpoint path for listing and creating folders."""
        pass

    @abstractmethod
    def _get_endpoint_documents(self, org_id: str) -> str:
        """Returns the endpoint path for listing and creating documents."""
        pass

    @abstractmethod
    def _get_endpoint_document_details(self, org_id: str, document_id: str) -> str:
        """Returns the endpoint path for a single document."""
        pass

    @abstractmethod
    def _get_endpoint_document_versions(self, org_id: str, document_id: str) -> str:
        """Returns the endpoint path for creating a new version of a document."""
        pass

    @abstractmethod
    def _get_endpoint_document_extraction(self, org_id: str, document_id: str) -> str:
        """Returns the endpoint path for storing OCR text and extracted metadata."""
        pass

    @abstractmethod
    def _get_endpoint_relationships(self, org_id: str, document_id: str) -> str:
        """Returns the endpoint path for the relationships view of a document."""
        pass

    @abstractmethod
    def _get_endpoint_link(self, org_id: str, document_id: str, target_id: str | None = None) -> str:
        """Returns the endpoint path for creating (no target) or deleting (with target) a link."""
        pass

    @abstractmethod
    def _get_endpoint_set_current(self, org_id: str, document_id: str) -> str:
        """Returns the endpoint path for promoting a document to current version."""
        pass

    @abstractmethod
    def _get_endpoint_move_version(self, org_id: str, document_id: str) -> str:
        """Returns the endpoint path for reordering versions of a group."""
        pass

    @abstractmethod
    def _get_endpoint_restore(self, org_id: str, document_id: str) -> str:
        """Returns the endpoint path for restoring a soft-deleted document."""
        pass

    @abstractmethod
    def _get_endpoint_audit(self, org_id: str) -> str:
        """Returns the endpoint path for the audit feed."""
        pass

    @abstractmethod
    def _get_endpoint_audit_access(self, org_id: str) -> str:
        """Returns the endpoint path telling whether the caller may read the audit feed."""
        pass

    @abstractmethod
    def _get_endpoint_users(self, org_id: str) -> str:
        """Returns the endpoint path for listing the members of an organization."""
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_endpoint_upload_sign(self, response: dict) -> SignedDestination:
        pass

    @abstractmethod
    def _parse_endpoint_folders(self, response: list | dict) -> list[list[str]]:
        pass

    @abstractmethod
    def _parse_endpoint_documents(self, response: list | dict) -> DocumentsListResponse:
        pass

    @abstractmethod
    def _parse_endpoint_document(self, response: dict) -> DocumentDetails:
        pass

    @abstractmethod
    def _parse_endpoint_relationships(self, document_id: str, response: dict) -> Relationships:
        pass

    @abstractmethod
    def _parse_endpoint_audit(self, response: list | dict) -> list[AuditEvent]:
        pass

    @abstractmethod
    def _parse_endpoint_users(self, response: list | dict) -> list[OrgUser]:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    ############# UPLOAD REQUESTS ##############
    async def do_sign_upload(self, org_id: str, filename: str, mime_type: str) -> SignedDestination:
        """
        Requests a one-time signed destination for a direct file transfer.

        Args:
            org_id (str): The organization the file is uploaded to.
            filename (str): Original file name.
            mime_type (str): Mime type of the file.

        Returns:
            SignedDestination: The signed URL and the storage key to finalize with.

        Raises:
            ApiRequestError: If the backend refuses to sign.
            ValueError: If the response lacks the signed URL or storage key.
        """
        data = await self.do_request_json(
            method="POST",
            endpoint=self._get_endpoint_upload_sign(org_id),
            json={"filename": filename, "mimeType": mime_type},
        )
        return self._parse_endpoint_upload_sign(data)

    async def do_finalize_upload(
        self,
        org_id: str,
        document_id: str,
        storage_key: str,
        file_size_bytes: int,
        mime_type: str,
        content_hash: str | None = None,
    ) -> DocumentDetails | None:
        """
        Binds a transferred file to its pending document record.

        Returns:
            DocumentDetails | None: The committed document, or None if the backend answered without a record.
        """
        body = {
            "documentId": document_id,
            "storageKey": storage_key,
            "fileSizeBytes": file_size_bytes,
            "mimeType": mime_type,
        }
        if content_hash:
            body["contentHash"] = content_hash
        data = await self.do_request_json(
            method="POST",
            endpoint=self._get_endpoint_upload_finalize(org_id),
            json=body,
            allow_empty=True,
        )
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return self._parse_endpoint_document(data)

    async def do_store_extraction(self, org_id: str, document_id: str, ocr_text: str, metadata: dict) -> None:
        """Stores OCR text and extracted metadata alongside a committed document."""
        await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_document_extraction(org_id, document_id),
            json={"ocrText": ocr_text, "metadata": metadata},
            raise_on_error=True,
        )

    ############# FOLDER REQUESTS ##############
    async def do_fetch_folders(self, org_id: str) -> list[list[str]]:
        """
        Fetches all folders of an organization as path segment lists.

        Returns:
            list[list[str]]: E.g. [["Finance"], ["Finance", "2025"]]
        """
        return self._parse_endpoint_folders(
            await self.do_request_json(method="GET", endpoint=self._get_endpoint_folders(org_id))
        )

    async def do_create_folder(self, org_id: str, parent_path: list[str], name: str) -> None:
        """
        Creates one folder below parent_path. The backend treats an existing path as success.
        """
        await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_folders(org_id),
            json={"parentPath": parent_path, "name": name},
            raise_on_error=True,
        )

    ############# DOCUMENT REQUESTS ##############
    async def do_fetch_documents(self, org_id: str) -> list[DocumentDetails]:
        """
        Fetches all (non-deleted) documents of an organization.

        Returns:
            list[DocumentDetails]: The documents as seen by the backend right now.
        """
        data = await self.do_request_json(method="GET", endpoint=self._get_endpoint_documents(org_id))
        documents_list_response = self._parse_endpoint_documents(data)
        self.logging.debug(
            "Fetched %d documents of org %s from %s",
            len(documents_list_response.documents), org_id, self._get_engine_name(),
        )
        return documents_list_response.documents

    async def do_fetch_document_details(self, org_id: str, document_id: str) -> DocumentDetails:
        data = await self.do_request_json(
            method="GET",
            endpoint=self._get_endpoint_document_details(org_id, document_id),
        )
        return self._parse_endpoint_document(data)

    async def do_create_document(self, org_id: str, body: dict) -> DocumentDetails:
        """
        Creates a pending document record.

        Args:
            org_id (str): The organization.
            body (dict): Derived metadata plus placement (folderPath, departmentId).

        Returns:
            DocumentDetails: The pending record.
        """
        data = await self.do_request_json(
            method="POST",
            endpoint=self._get_endpoint_documents(org_id),
            json=body,
        )
        return self._parse_endpoint_document(data)

    async def do_create_version(self, org_id: str, base_document_id: str, body: dict) -> DocumentDetails:
        """
        Creates a pending record as the next version of base_document_id's version group.
        """
        data = await self.do_request_json(
            method="POST",
            endpoint=self._get_endpoint_document_versions(org_id, base_document_id),
            json=body,
        )
        return self._parse_endpoint_document(data)

    async def do_restore_document(self, org_id: str, document_id: str) -> None:
        await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_restore(org_id, document_id),
            raise_on_error=True,
        )

    ############# VERSION REQUESTS ##############
    async def do_set_current(self, org_id: str, document_id: str) -> None:
        await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_set_current(org_id, document_id),
            raise_on_error=True,
        )

    async def do_move_version(self, org_id: str, document_id: str, from_version: int, to_version: int) -> None:
        await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_move_version(org_id, document_id),
            json={"fromVersion": from_version, "toVersion": to_version},
            raise_on_error=True,
        )

    ############# RELATIONSHIP REQUESTS ##############
    async def do_fetch_relationships(self, org_id: str, document_id: str) -> Relationships:
        data = await self.do_request_json(
            method="GET",
            endpoint=self._get_endpoint_relationships(org_id, document_id),
        )
        return self._parse_endpoint_relationships(document_id, data)

    async def do_link(self, org_id: str, from_id: str, to_id: str, link_type: str) -> None:
        await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_link(org_id, from_id),
            json={"linkedId": to_id, "linkType": link_type},
            raise_on_error=True,
        )

    async def do_unlink(self, org_id: str, from_id: str, to_id: str) -> None:
        await self.do_request(
            method="DELETE",
            endpoint=self._get_endpoint_link(org_id, from_id, to_id),
            raise_on_error=True,
        )

    ############# AUDIT REQUESTS ##############
    async def do_fetch_audit(self, org_id: str, limit: int = 200, exclude_self: bool = True) -> list[AuditEvent]:
        """
        Fetches the coalesced audit feed of an organization.

        Args:
            org_id (str): The organization.
            limit (int): Maximum number of records the backend should return.
            exclude_self (bool): Let the backend drop the caller's own events.

        Returns:
            list[AuditEvent]: Events in backend order.
        """
        data = await self.do_request_json(
            method="GET",
            endpoint=self._get_endpoint_audit(org_id),
            params={"limit": limit, "coalesce": 1, "excludeSelf": 1 if exclude_self else 0},
        )
        return self._parse_endpoint_audit(data)

    async def do_check_audit_access(self, org_id: str) -> bool:
        data = await self.do_request_json(method="GET", endpoint=self._get_endpoint_audit_access(org_id))
        if isinstance(data, dict):
            data = data.get("allowed")
        return data is True

    async def do_fetch_users(self, org_id: str) -> list[OrgUser]:
        data = await self.do_request_json(method="GET", endpoint=self._get_endpoint_users(org_id))
        return self._parse_endpoint_users(data)
