import httpx

from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.models.Document import DocumentDetails
from shared.helper.HelperConfig import HelperConfig
from shared.models.context import OrgContext
from shared.models.errors import ApiRequestError, NetworkError, NotFoundError, VersionConflictError


def sort_versions(documents: list[DocumentDetails]) -> list[DocumentDetails]:
    """Highest version number first."""
    return sorted(documents, key=lambda doc: doc.version_number, reverse=True)


class VersionChainManager:
    """
    Reads and reorders the members of a version group.

    Every write is followed by a fresh read of the group; the returned list
    is always what the backend holds after the write.
    """

    def __init__(self, helper_config: HelperConfig, dms_client: DMSClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._dms = dms_client

    ##########################################
    ################# READS ##################
    ##########################################

    async def do_list_versions(self, context: OrgContext, version_group_id: str) -> list[DocumentDetails]:
        """
        Lists all members of a version group.

        Args:
            context (OrgContext): Organization scope.
            version_group_id (str): The group to list.

        Returns:
            list[DocumentDetails]: The members, sorted by version number descending.

        Raises:
            NetworkError: If the document listing could not be fetched.
        """
        try:
            documents = await self._dms.do_fetch_documents(context.org_id)
        except (ApiRequestError, httpx.HTTPError, ValueError) as exc:
            raise NetworkError(f"Could not list versions of group {version_group_id}: {exc}") from exc
        members = [doc for doc in documents if doc.version_group_id == version_group_id]
        return sort_versions(members)

    async def _get_document(self, context: OrgContext, document_id: str) -> DocumentDetails:
        try:
            return await self._dms.do_fetch_document_details(context.org_id, document_id)
        except ApiRequestError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Document {document_id} not found.") from exc
            raise NetworkError(f"Could not fetch document {document_id}: {exc}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise NetworkError(f"Could not fetch document {document_id}: {exc}") from exc

    async def _get_group_id(self, context: OrgContext, document_id: str) -> str:
        document = await self._get_document(context, document_id)
        if not document.version_group_id:
            raise NotFoundError(f"Document {document_id} does not belong to a version group.")
        return document.version_group_id

    ##########################################
    ################# WRITES #################
    ##########################################

    async def do_set_current(self, context: OrgContext, document_id: str) -> list[DocumentDetails]:
        """
        Marks document_id as the current version of its group.

        Returns:
            list[DocumentDetails]: The refetched group members.

        Raises:
            NotFoundError: If the document does not exist or has no version group.
        """
        group_id = await self._get_group_id(context, document_id)
        try:
            await self._dms.do_set_current(context.org_id, document_id)
        except ApiRequestError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Document {document_id} not found.") from exc
            raise NetworkError(f"Could not set document {document_id} as current version: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Could not set document {document_id} as current version: {exc}") from exc
        self.logging.info("Set document %s as current version of group %s", document_id, group_id)

        versions = await self.do_list_versions(context, group_id)
        current = [doc.id for doc in versions if doc.is_current_version]
        if len(current) > 1:
            self.logging.error(
                "Version group %s reports %d current members after set-current: %s",
                group_id, len(current), ", ".join(current),
            )
        return versions

    async def do_move_version(
        self,
        context: OrgContext,
        document_id: str,
        from_version: int,
        to_version: int,
    ) -> list[DocumentDetails]:
        """
        Swaps the version numbers from_version and to_version inside the group of document_id.

        Returns:
            list[DocumentDetails]: The refetched group members.

        Raises:
            VersionConflictError: If both versions are equal or the backend reports a conflict.
            NotFoundError: If the document or one of the versions does not exist.
        """
        if from_version == to_version:
            raise VersionConflictError(f"Cannot move version {from_version} onto itself.")

        group_id = await self._get_group_id(context, document_id)
        try:
            await self._dms.do_move_version(context.org_id, document_id, from_version, to_version)
        except ApiRequestError as exc:
            if exc.status_code == 409:
                raise VersionConflictError(
                    f"Moving version {from_version} to {to_version} in group {group_id} conflicted: {exc}"
                ) from exc
            if exc.status_code == 404:
                raise NotFoundError(f"Version {from_version} or {to_version} not found in group {group_id}.") from exc
            raise NetworkError(f"Could not move version {from_version} in group {group_id}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Could not move version {from_version} in group {group_id}: {exc}") from exc
        self.logging.info("Moved version %d to %d in group %s", from_version, to_version, group_id)
        return await self.do_list_versions(context, group_id)
