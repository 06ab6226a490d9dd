import httpx

from services.versions.VersionChainManager import sort_versions
from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.models.Relationship import DEFAULT_LINK_TYPE, Relationships
from shared.helper.HelperConfig import HelperConfig
from shared.models.context import OrgContext
from shared.models.errors import (
    ApiRequestError,
    DuplicateLinkError,
    NetworkError,
    NotFoundError,
    SelfLinkError,
)


class RelationshipGraph:
    """Directed, typed links between documents plus the version view of each document."""

    def __init__(self, helper_config: HelperConfig, dms_client: DMSClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._dms = dms_client

    async def do_fetch_relationships(self, context: OrgContext, document_id: str) -> Relationships:
        """
        Fetches incoming and outgoing links and the version group of a document.

        Raises:
            NotFoundError: If the document does not exist.
            NetworkError: On any other transport or HTTP failure.
        """
        try:
            relationships = await self._dms.do_fetch_relationships(context.org_id, document_id)
        except ApiRequestError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Document {document_id} not found.") from exc
            raise NetworkError(f"Could not load relationships of {document_id}: {exc}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise NetworkError(f"Could not load relationships of {document_id}: {exc}") from exc
        return relationships.model_copy(update={"versions": sort_versions(relationships.versions)})

    async def do_link(
        self,
        context: OrgContext,
        from_id: str,
        to_id: str,
        link_type: str = DEFAULT_LINK_TYPE,
    ) -> Relationships:
        """
        Creates the edge from_id -> to_id and returns the refetched view of from_id.

        Raises:
            SelfLinkError: If from_id equals to_id.
            DuplicateLinkError: If the same (to_id, link_type) edge already exists.
        """
        if from_id == to_id:
            raise SelfLinkError(f"Document {from_id} cannot be linked to itself.")

        current = await self.do_fetch_relationships(context, from_id)
        if current.has_outgoing(to_id, link_type):
            raise DuplicateLinkError(f"Document {from_id} is already linked to {to_id} as '{link_type}'.")

        try:
            await self._dms.do_link(context.org_id, from_id, to_id, link_type)
        except ApiRequestError as exc:
            if exc.status_code == 409:
                raise DuplicateLinkError(f"Document {from_id} is already linked to {to_id} as '{link_type}'.") from exc
            if exc.status_code == 404:
                raise NotFoundError(f"Document {to_id} not found.") from exc
            raise NetworkError(f"Could not link {from_id} to {to_id}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Could not link {from_id} to {to_id}: {exc}") from exc
        self.logging.info("Linked document %s -> %s (%s)", from_id, to_id, link_type)
        return await self.do_fetch_relationships(context, from_id)

    async def do_unlink(self, context: OrgContext, from_id: str, to_id: str) -> Relationships:
        """
        Removes the edge from_id -> to_id. A reverse edge to_id -> from_id is left untouched.

        Raises:
            NotFoundError: If no such edge exists.
        """
        try:
            await self._dms.do_unlink(context.org_id, from_id, to_id)
        except ApiRequestError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"No link from {from_id} to {to_id}.") from exc
            raise NetworkError(f"Could not unlink {from_id} from {to_id}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Could not unlink {from_id} from {to_id}: {exc}") from exc
        self.logging.info("Unlinked document %s -> %s", from_id, to_id)
        return await self.do_fetch_relationships(context, from_id)

    async def do_restore(self, context: OrgContext, document_id: str) -> Relationships:
        """Restores a soft-deleted document and returns its refetched view."""
        try:
            await self._dms.do_restore_document(context.org_id, document_id)
        except ApiRequestError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Document {document_id} not found.") from exc
            raise NetworkError(f"Could not restore document {document_id}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Could not restore document {document_id}: {exc}") from exc
        self.logging.info("Restored document %s", document_id)
        return await self.do_fetch_relationships(context, document_id)
