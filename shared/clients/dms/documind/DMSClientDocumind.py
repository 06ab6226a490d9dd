from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.clients.dms.models.Document import DocumentDetails, DocumentsListResponse
from shared.clients.dms.models.Relationship import Relationships, RelatedDocument, DEFAULT_LINK_TYPE
from shared.clients.dms.models.Upload import SignedDestination
from shared.clients.dms.models.Audit import AuditEvent, AUDIT_EVENT_TYPES
from shared.clients.dms.models.User import OrgUser
from datetime import datetime, timezone
from typing import Any


def _pick(response: dict, *keys: str, default: Any = None) -> Any:
    """Return the first non-None value among keys; the backend mixes camelCase and snake_case."""
    for key in keys:
        value = response.get(key)
        if value is not None:
            return value
    return default


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _as_list(response: list | dict, *keys: str) -> list:
    """Listing endpoints answer either with a bare array or with an envelope."""
    if isinstance(response, list):
        return response
    for key in keys:
        if isinstance(response.get(key), list):
            return response[key]
    return []


class DMSClientDocumind(DMSClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Documind"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/health"

    def _get_endpoint_upload_sign(self, org_id: str) -> str:
        return f"/orgs/{org_id}/uploads/sign"

    def _get_endpoint_upload_finalize(self, org_id: str) -> str:
        return f"/orgs/{org_id}/uploads/finalize"

    def _get_endpoint_folders(self, org_id: str) -> str:
        return f"/orgs/{org_id}/folders"

    def _get_endpoint_documents(self, org_id: str) -> str:
        return f"/orgs/{org_id}/documents"

    def _get_endpoint_document_details(self, org_id: str, document_id: str) -> str:
        return f"/orgs/{org_id}/documents/{document_id}"

    def _get_endpoint_document_versions(self, org_id: str, document_id: str) -> str:
        return f"/orgs/{org_id}/documents/{document_id}/versions"

    def _get_endpoint_document_extraction(self, org_id: str, document_id: str) -> str:
        return f"/orgs/{org_id}/documents/{document_id}/extraction"

    def _get_endpoint_relationships(self, org_id: str, document_id: str) -> str:
        return f"/orgs/{org_id}/documents/{document_id}/relationships"

    def _get_endpoint_link(self, org_id: str, document_id: str, target_id: str | None = None) -> str:
        plain_url = f"/orgs/{org_id}/documents/{document_id}/link"
        if target_id:
            plain_url += f"/{target_id}"
        return plain_url

    def _get_endpoint_set_current(self, org_id: str, document_id: str) -> str:
        return f"/orgs/{org_id}/documents/{document_id}/set-current"

    def _get_endpoint_move_version(self, org_id: str, document_id: str) -> str:
        return f"/orgs/{org_id}/documents/{document_id}/move-version"

    def _get_endpoint_restore(self, org_id: str, document_id: str) -> str:
        return f"/orgs/{org_id}/documents/{document_id}/restore"

    def _get_endpoint_audit(self, org_id: str) -> str:
        return f"/orgs/{org_id}/audit"

    def _get_endpoint_audit_access(self, org_id: str) -> str:
        return f"/orgs/{org_id}/audit/can-access"

    def _get_endpoint_users(self, org_id: str) -> str:
        return f"/orgs/{org_id}/users"

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_endpoint_upload_sign(self, response: dict) -> SignedDestination:
        signed_url = _pick(response, "signedUrl", "signed_url")
        storage_key = _pick(response, "storageKey", "storage_key")
        if not signed_url or not storage_key:
            raise ValueError("Failed to obtain signed upload URL: response lacks signedUrl or storageKey.")
        return SignedDestination(
            signed_url=signed_url,
            storage_key=storage_key,
            token=response.get("token"),
            expires_at=_parse_datetime(_pick(response, "expiresAt", "expires_at")),
        )

    def _parse_endpoint_folders(self, response: list | dict) -> list[list[str]]:
        folders = []
        for item in _as_list(response, "folders", "results"):
            # folders come as segment arrays or as {"path": [...]} objects
            path = item.get("path") if isinstance(item, dict) else item
            if isinstance(path, str):
                path = [segment for segment in path.split("/") if segment]
            if path:
                folders.append([str(segment) for segment in path])
        return folders

    def _parse_endpoint_documents(self, response: list | dict) -> DocumentsListResponse:
        docs = [self._parse_endpoint_document(item) for item in _as_list(response, "documents", "results")]
        return DocumentsListResponse(
            engine=self._get_engine_name(),
            documents=docs,
            overallCount=response.get("count", len(docs)) if isinstance(response, dict) else len(docs),
        )

    def _parse_endpoint_document(self, response: dict) -> DocumentDetails:
        return DocumentDetails(
            #base
            engine=self._get_engine_name(),
            id=str(response["id"]) if response.get("id") is not None else "",

            #details
            title=_pick(response, "title", "name"),
            filename=response.get("filename"),
            type=response.get("type"),
            subject=response.get("subject"),
            description=response.get("description"),
            category=response.get("category"),
            sender=response.get("sender"),
            receiver=response.get("receiver"),
            document_date=_pick(response, "documentDate", "document_date"),
            tags=response.get("tags") or [],
            keywords=response.get("keywords") or [],
            summary=response.get("summary"),
            folder_path=_pick(response, "folderPath", "folder_path", default=[]),
            department_id=_pick(response, "departmentId", "department_id"),

            #file
            storage_key=_pick(response, "storageKey", "storage_key"),
            file_size_bytes=_pick(response, "fileSizeBytes", "file_size_bytes"),
            mime_type=_pick(response, "mimeType", "mime_type"),
            content_hash=_pick(response, "contentHash", "content_hash"),

            #versioning
            version_group_id=_pick(response, "versionGroupId", "version_group_id"),
            version_number=_pick(response, "versionNumber", "version_number", "version", default=1),
            is_current_version=_pick(response, "isCurrentVersion", "is_current_version", default=True),
            supersedes_id=_pick(response, "supersedesId", "supersedes_id"),

            #lifecycle
            uploaded_at=_parse_datetime(_pick(response, "uploadedAt", "uploaded_at")),
            deleted_at=_parse_datetime(_pick(response, "deletedAt", "deleted_at")),
        )

    def _parse_related(self, item: dict, direction: str) -> RelatedDocument:
        return RelatedDocument(
            id=str(item.get("id")),
            title=_pick(item, "title", "name"),
            link_type=_pick(item, "linkType", "link_type", default=DEFAULT_LINK_TYPE),
            direction=item.get("direction") or direction,
            version_number=_pick(item, "versionNumber", "version_number"),
        )

    def _parse_endpoint_relationships(self, document_id: str, response: dict) -> Relationships:
        return Relationships(
            engine=self._get_engine_name(),
            document_id=document_id,
            incoming=[self._parse_related(item, "incoming") for item in response.get("incoming") or []],
            outgoing=[self._parse_related(item, "outgoing") for item in response.get("outgoing") or []],
            linked=[self._parse_related(item, "outgoing") for item in response.get("linked") or []],
            versions=[self._parse_endpoint_document(item) for item in response.get("versions") or []],
        )

    def _parse_endpoint_audit(self, response: list | dict) -> list[AuditEvent]:
        events = []
        for item in _as_list(response, "events", "results"):
            if item.get("type") not in AUDIT_EVENT_TYPES:
                self.logging.debug("Skipping audit record %s with unknown type %r", item.get("id"), item.get("type"))
                continue
            path = item.get("path")
            ts = _parse_datetime(item.get("ts"))
            events.append(AuditEvent(
                id=str(item.get("id")),
                timestamp_ms=int(ts.timestamp() * 1000) if ts else 0,
                actor=item.get("actor_email") or item.get("actor_user_id") or "system",
                type=item.get("type"),
                doc_id=item.get("doc_id") or None,
                title=item.get("title") or None,
                path="/".join(path) if isinstance(path, list) else None,
                note=item.get("note") or None,
                actor_email=item.get("actor_email") or None,
                actor_role=item.get("actor_role") or None,
            ))
        return events

    def _parse_endpoint_users(self, response: list | dict) -> list[OrgUser]:
        return [
            OrgUser(
                engine=self._get_engine_name(),
                id=str(item.get("id")),
                email=item.get("email"),
                display_name=_pick(item, "displayName", "display_name", "name"),
                role=item.get("role"),
            )
            for item in _as_list(response, "users", "results")
        ]
