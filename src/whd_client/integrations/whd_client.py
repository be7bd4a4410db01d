"""Web Help Desk REST API client for tickets, assets, locations and attachments."""

import asyncio
import base64
import os
import ssl
import time
import aiofiles
import httpx
from pydantic import BaseModel, ValidationError
from typing import Optional, Dict, Any, List, Type, TypeVar
from whd_client.integrations.exceptions import (
    WHDError,
    WHDAPIError,
    WHDRequestError,
    WHDResponseError,
)
from whd_client.models.asset import Asset
from whd_client.models.auth import User, wrap_auth
from whd_client.models.config import Settings
from whd_client.models.resource import Location, LocationPayload, RequestType
from whd_client.models.ticket import Note, Ticket, TicketPayload
from whd_client.utils.logger import get_logger, get_structured_logger, redact

logger = get_logger(__name__)

URN = "/helpdesk/WebObjects/Helpdesk.woa/ra/"
UPLOAD_PATH = "/helpdesk/attachment/upload"

RETRY_MAX = 10
DEFAULT_LIMIT = 25
MAX_LIMIT = 100
NOTES_LIMIT = 1000

ACTIVE_LOCATIONS_QUALIFIER = "((deleted=null)or(deleted=0))"

ModelT = TypeVar("ModelT", bound=BaseModel)


class WHDClient:
    """Async client for the Web Help Desk REST API."""

    def __init__(
        self,
        base_url: str,
        user: User,
        ssl_verify: bool = True,
        retry_max: int = RETRY_MAX,
        retry_wait_min: float = 1.0,
        retry_wait_max: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.api_base = f"{self.base_url}{URN}"
        self.user = user
        self.ssl_verify = ssl_verify
        self.retry_max = retry_max
        self.retry_wait_min = retry_wait_min
        self.retry_wait_max = retry_wait_max
        self.transport = transport
        self.client = self._new_http_client()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "WHDClient":
        """Create a client from environment settings."""
        return cls(
            base_url=settings.whd_url,
            user=settings.user,
            ssl_verify=settings.whd_ssl_verify,
            retry_max=settings.whd_retry_max,
            retry_wait_min=settings.whd_retry_wait_min,
            retry_wait_max=settings.whd_retry_wait_max,
            transport=transport
        )

    def _new_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            verify=self.ssl_verify,
            timeout=30.0,
            transport=self.transport
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "WHDClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @staticmethod
    def _should_retry(response: httpx.Response) -> bool:
        status = response.status_code
        return status == 429 or (status >= 500 and status != 501)

    @staticmethod
    def _is_permanent(error: httpx.TransportError) -> bool:
        """Errors that fail the same way on every attempt: bad URL scheme or untrusted certificate."""
        if isinstance(error, httpx.UnsupportedProtocol):
            return True

        cause = error
        while cause is not None:
            if isinstance(cause, ssl.SSLCertVerificationError):
                return True
            cause = cause.__cause__ or cause.__context__
        return False

    async def _send(
        self,
        method: str,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        **kwargs
    ) -> httpx.Response:
        """
        Send a request, retrying on transport errors and retryable statuses.

        Args:
            method: HTTP method
            url: Absolute URL, without query string
            client: HTTP client to use instead of the shared one
            timeout: Request timeout in seconds
            **kwargs: Passed to ``httpx.AsyncClient.request``

        Returns:
            HTTP response

        Raises:
            WHDRequestError: If every attempt failed
        """
        client = client or self.client
        attempts = max(self.retry_max, 0) + 1
        wait = self.retry_wait_min

        for attempt in range(1, attempts + 1):
            try:
                response = await client.request(method, url, timeout=timeout, **kwargs)
            except httpx.TransportError as e:
                if self._is_permanent(e):
                    logger.error(f"The HTTP request failed with error {e}")
                    raise WHDRequestError(f"{method} {url} failed: {e}") from e
                if attempt == attempts:
                    logger.error(f"The HTTP request failed with error {e}")
                    raise WHDRequestError(
                        f"{method} {url} giving up after {attempt} attempt(s): {e}"
                    ) from e
                params = redact(kwargs.get("params") or {})
                logger.warning(f"{method} {url} {params} failed ({e}), retrying in {wait}s")
            else:
                if not self._should_retry(response):
                    return response
                if attempt == attempts:
                    logger.error(f"{method} {url} returned {response.status_code}, giving up")
                    raise WHDRequestError(
                        f"{method} {url} giving up after {attempt} attempt(s): "
                        f"status {response.status_code}"
                    )
                logger.warning(
                    f"{method} {url} returned {response.status_code}, retrying in {wait}s"
                )

            await asyncio.sleep(wait)
            wait = min(wait * 2, self.retry_wait_max)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30.0
    ) -> httpx.Response:
        """Make an authenticated request to an endpoint under the API base."""
        url = f"{self.api_base}{endpoint.lstrip('/')}"
        response = await self._send(
            method,
            url,
            params=wrap_auth(params or {}, self.user),
            json=data,
            headers=headers,
            timeout=timeout
        )
        self._raise_for_status(response)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return

        reason = None
        try:
            body = response.json()
            if isinstance(body, dict):
                reason = body.get("reason") or body.get("message")
        except ValueError:
            pass

        reason = reason or response.text
        logger.error(f"WHD returned {response.status_code}: {reason}")
        raise WHDAPIError(
            f"WHD returned {response.status_code}: {reason}",
            status_code=response.status_code,
            reason=reason
        )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            logger.error(f"Invalid JSON from WHD: {response.text}")
            raise WHDResponseError(f"Invalid JSON from WHD: {response.text}")

    @staticmethod
    def _validate(model: Type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Unexpected {model.__name__} from WHD: {e}")
            raise WHDResponseError(f"Unexpected {model.__name__} from WHD: {e}") from e

    def _validate_list(self, model: Type[ModelT], data: Any) -> List[ModelT]:
        if not isinstance(data, list):
            raise WHDResponseError(f"Expected a list of {model.__name__} from WHD, got: {data!r}")
        return [self._validate(model, item) for item in data]

    async def _get_json(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 30.0
    ) -> Any:
        response = await self._request("GET", endpoint, params=params, timeout=timeout)
        return self._json(response)

    @staticmethod
    def _clamp_paging(limit: int, page: int) -> Dict[str, int]:
        if limit <= 0:
            limit = DEFAULT_LIMIT
        elif limit > MAX_LIMIT:
            limit = MAX_LIMIT
        if page <= 0:
            page = 1
        return {"limit": limit, "page": page}

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @staticmethod
    def _session_key_from(data: Any) -> str:
        session_key = data.get("sessionKey") if isinstance(data, dict) else None
        if not isinstance(session_key, str):
            logger.error("invalid sessionKey in WHD response")
            raise WHDResponseError(f"Invalid sessionKey in WHD response: {data!r}")
        return session_key

    async def get_session_key(self) -> str:
        """
        Open a WHD session for the configured user.

        Returns:
            Session key, usable with ``User.with_session_key``
        """
        data = await self._get_json("Session")
        return self._session_key_from(data)

    async def terminate_session(self, session_key: str) -> None:
        """
        Close a WHD session.

        Raises:
            WHDAPIError: If WHD does not answer with ``OK``
        """
        response = await self._send(
            "DELETE",
            f"{self.api_base}Session",
            params={"sessionKey": session_key}
        )

        if response.text == "OK":
            logger.info("Terminated WHD session")
            return

        raise WHDAPIError(
            f"Invalid response: {response.text}",
            status_code=response.status_code,
            reason=response.text
        )

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    async def get_ticket(self, ticket_id: int) -> Ticket:
        """Get a ticket by id."""
        data = await self._get_json(f"Ticket/{ticket_id}", timeout=60.0)
        return self._validate(Ticket, data)

    async def get_tickets(self, qualifier: str, limit: int = 0, page: int = 0) -> List[Ticket]:
        """
        Query tickets matching a qualifier.

        Sample qualifiers:
          - all tickets including deleted:
            ((deleted = null) or (deleted = 0) or (deleted = 1))
          - tickets in location ATL: (location.locationName = 'ATL')
          - open tickets: (statustype.statusTypeName = 'Open')

        Args:
            qualifier: WHD qualifier expression
            limit: Page size, 0 means 25, capped at 100
            page: Page number starting at 1, 0 means 1

        Returns:
            Tickets on the requested page
        """
        params = {"qualifier": qualifier, **self._clamp_paging(limit, page)}
        data = await self._get_json("Tickets", params=params, timeout=90.0)
        return self._validate_list(Ticket, data)

    async def create_update_ticket(self, ticket: Ticket) -> int:
        """
        Create a ticket, or update it when it already has an id.

        Args:
            ticket: Ticket to send

        Returns:
            Id of the created or updated ticket
        """
        payload = TicketPayload.from_ticket(ticket)
        logger.info(f"JSON Sent to WHD: {payload.fields}")

        if not ticket.id:
            response = await self._request("POST", "Ticket", data=payload.fields, timeout=90.0)
        else:
            response = await self._request(
                "PUT", f"Ticket/{ticket.id}", data=payload.fields, timeout=90.0
            )

        result = self._validate(Ticket, self._json(response))
        if not result.id:
            raise WHDResponseError(f"No ticket id in WHD response: {response.text}")

        logger.info(f"Saved WHD ticket {result.id}")
        return result.id

    async def create_note(self, ticket_id: int, note_text: str) -> int:
        """Add a visible tech note to a ticket and return the note id."""
        return await self._create_note(Note.for_ticket(ticket_id, note_text, hidden=False))

    async def create_hidden_note(self, ticket_id: int, note_text: str) -> int:
        """Add a note hidden from the client to a ticket and return the note id."""
        return await self._create_note(Note.for_ticket(ticket_id, note_text, hidden=True))

    async def _create_note(self, note: Note) -> int:
        body = note.to_whd()
        logger.info(f"JSON Sent to WHD: {body}")

        response = await self._request("POST", "TechNotes", data=body, timeout=60.0)
        result = self._validate(Note, self._json(response))

        if result.reason:
            logger.error(f"Unable to create note: {result.reason}")
            raise WHDAPIError(
                f"Unable to create note: {result.reason}",
                status_code=response.status_code,
                reason=result.reason
            )
        if not result.id:
            raise WHDResponseError(f"No note id in WHD response: {response.text}")

        return result.id

    async def get_notes(self, ticket_id: int) -> List[Note]:
        """Get the notes of a ticket."""
        params = {"jobTicketId": ticket_id, "limit": NOTES_LIMIT}
        data = await self._get_json("TicketNotes", params=params, timeout=90.0)
        return self._validate_list(Note, data)

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    async def get_attachment(self, attachment_id: int) -> bytes:
        """Download the raw content of a ticket attachment."""
        response = await self._request(
            "GET",
            f"TicketAttachments/{attachment_id}",
            headers={"accept": "application/octet"},
            timeout=120.0
        )
        return response.content

    async def get_attachment_as_base64(self, attachment_id: int) -> str:
        """Download an attachment as a base64 string."""
        data = await self.get_attachment(attachment_id)
        return base64.b64encode(data).decode("ascii")

    async def upload_attachment(self, ticket_id: int, filename: str, file_data: bytes) -> int:
        """Attach a file to a ticket and return the attachment id."""
        return await self.upload_attachment_to_entity("jobTicket", ticket_id, filename, file_data)

    async def upload_attachment_to_note(self, note_id: int, filename: str, file_data: bytes) -> int:
        """Attach a file to a tech note and return the attachment id."""
        return await self.upload_attachment_to_entity("techNote", note_id, filename, file_data)

    async def upload_attachment_to_ticket_from_file(
        self,
        ticket_id: int,
        filename: str,
        file_path: str,
        delete_file_after: bool = False
    ) -> int:
        """Attach a local file to a ticket."""
        file_data = await self._read_file(file_path)
        attachment_id = await self.upload_attachment(ticket_id, filename, file_data)
        if delete_file_after:
            self._remove_file(file_path)
        return attachment_id

    async def upload_attachment_to_note_from_file(
        self,
        note_id: int,
        filename: str,
        file_path: str,
        delete_file_after: bool = False
    ) -> int:
        """Attach a local file to a tech note."""
        file_data = await self._read_file(file_path)
        attachment_id = await self.upload_attachment_to_note(note_id, filename, file_data)
        if delete_file_after:
            self._remove_file(file_path)
        return attachment_id

    @staticmethod
    def _remove_file(file_path: str) -> None:
        # The attachment already exists in WHD at this point
        try:
            os.remove(file_path)
        except OSError as e:
            logger.warning(f"Unable to delete uploaded file {file_path}: {e}")

    @staticmethod
    async def _read_file(file_path: str) -> bytes:
        try:
            async with aiofiles.open(file_path, 'rb') as f:
                return await f.read()
        except OSError as e:
            logger.error(f"Unable to read attachment file {file_path}: {e}")
            raise WHDError(f"Unable to read attachment file {file_path}: {e}") from e

    async def upload_attachment_to_entity(
        self,
        entity: str,
        entity_id: int,
        filename: str,
        file_data: bytes
    ) -> int:
        """
        Upload an attachment to a WHD entity.

        The upload servlet is outside the REST API and needs a browser-like
        session: the JSESSIONID cookie from opening a session, plus the
        session key as the ``wosid`` cookie.

        Args:
            entity: Entity type, ``jobTicket`` or ``techNote``
            entity_id: Id of the ticket or note
            filename: Name for the attachment
            file_data: File content

        Returns:
            Attachment id
        """
        log = get_structured_logger(__name__, entity=entity, entity_id=entity_id)

        # Fresh cookie jar per upload
        async with self._new_http_client() as upload_client:
            response = await self._send(
                "GET",
                f"{self.api_base}Session",
                client=upload_client,
                params=wrap_auth({}, self.user),
                headers={"accept": "application/json"}
            )
            if response.status_code != 200:
                log.error(f"Error getting session key: bad status {response.status_code}")
                raise WHDAPIError(
                    f"error getting session key: bad status: {response.status_code}",
                    status_code=response.status_code,
                    reason=response.text
                )

            session_key = self._session_key_from(self._json(response))
            log = log.with_context(session_key=session_key)
            log.debug("Session key retrieved for upload")

            upload_client.cookies.set("wosid", session_key, path="/")

            url = f"{self.base_url}{UPLOAD_PATH}"
            log.info(f"Sending attachment {filename} to {url}")

            response = await self._send(
                "POST",
                url,
                client=upload_client,
                params={
                    "type": entity,
                    "entityId": entity_id,
                    "returnFields": "id",
                    "sessionKey": session_key,
                },
                headers={
                    "User-Agent": "Java/1.7.0_55",
                    "Pragma": "no-cache",
                    "Cache-Control": "no-cache",
                    "Connection": "keep-alive",
                    "Accept": "text/html,image/gif,image/jpeg,*;q=.2,*/*;q=.2",
                },
                files={"file": (os.path.basename(filename), file_data, "application/octet-stream")},
                timeout=120.0
            )

        log.debug(f"Attachment upload response ({response.status_code}): {response.text}")
        data = self._json(response)
        if not isinstance(data, dict):
            raise WHDResponseError(f"Invalid attachment upload response: {response.text}")

        attachment_id = data.get("id")
        if isinstance(attachment_id, (int, float)) and not isinstance(attachment_id, bool):
            log.info(f"Uploaded attachment {attachment_id}")
            return int(attachment_id)

        reason = data.get("reason")
        if isinstance(reason, str):
            log.error(f"Unable to upload attachment: {reason}")
            raise WHDAPIError(
                f"Unable to upload attachment: {reason}",
                status_code=response.status_code,
                reason=reason
            )

        log.error("Invalid attachment id in response")
        raise WHDResponseError("Invalid attachment id in response")

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def get_asset(self, asset_number: str) -> List[Asset]:
        """Get the assets carrying an asset number."""
        data = await self._get_json("Assets", params={"assetNumber": asset_number})
        return self._validate_list(Asset, data)

    async def get_asset_by_id(self, asset_id: int) -> Asset:
        """Get an asset by id."""
        data = await self._get_json(f"Assets/{asset_id}")
        return self._validate(Asset, data)

    async def get_assets(self, qualifier: str, limit: int = 0, page: int = 0) -> List[Asset]:
        """Query assets matching a qualifier; paging works as for ``get_tickets``."""
        params = {"qualifier": qualifier, **self._clamp_paging(limit, page)}
        data = await self._get_json("Assets", params=params)
        return self._validate_list(Asset, data)

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    async def get_location(self, location_id: int) -> Location:
        """Get a location by id."""
        data = await self._get_json(f"Location/{location_id}")
        return self._validate(Location, data)

    async def create_update_location(self, location: Location) -> int:
        """
        Create a location, or update it when it already has an id.

        On update, custom fields stored in WHD but not set on ``location``
        are sent back unchanged.

        Returns:
            Id of the created or updated location
        """
        current = None
        if location.id:
            current = await self.get_location(location.id)

        payload = LocationPayload.from_location(location, current)
        logger.info(f"JSON Sent to WHD: {payload.fields}")

        if not location.id:
            response = await self._request("POST", "Locations", data=payload.fields, timeout=90.0)
        else:
            response = await self._request(
                "PUT", f"Locations/{location.id}", data=payload.fields, timeout=90.0
            )

        result = self._validate(Location, self._json(response))
        if not result.id:
            raise WHDResponseError(f"No location id in WHD response: {response.text}")

        return result.id

    # ------------------------------------------------------------------
    # Lookup lists
    # ------------------------------------------------------------------

    async def _get_resource_list_page(
        self,
        resource: str,
        limit: int,
        page: int,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Any]:
        logger.debug(f"Get {resource} | limit: {limit} | page: {page}")
        query = {"limit": limit, "page": page, **(params or {})}
        data = await self._get_json(resource, params=query, timeout=120.0)
        if not isinstance(data, list):
            logger.error(f"Invalid {resource} page from WHD: {data!r}")
            raise WHDResponseError(f"Expected a list of {resource} from WHD, got: {data!r}")
        return data

    async def _get_resource_list(
        self,
        resource: str,
        limit: int,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Any]:
        """Fetch every page of a resource; a page shorter than ``limit`` is the last."""
        results: List[Any] = []
        page = 1

        while True:
            items = await self._get_resource_list_page(resource, limit, page, params)
            results.extend(items)
            if len(items) != limit:
                break
            page += 1

        return results

    @staticmethod
    def _parse_resource_list(items: List[Any], id_label: str, value_label: str) -> Dict[int, str]:
        result = {}
        for item in items:
            try:
                result[int(item[id_label])] = item[value_label]
            except (KeyError, TypeError, ValueError) as e:
                raise WHDResponseError(f"Invalid list entry from WHD: {item!r}") from e
        return result

    async def _get_lookup(
        self,
        resource: str,
        limit: int,
        value_label: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[int, str]:
        items = await self._get_resource_list(resource, limit, params)
        return self._parse_resource_list(items, "id", value_label)

    async def get_request_type_list(self) -> Dict[int, RequestType]:
        """Get all request types keyed by id."""
        items = await self._get_resource_list("RequestTypes", 75, {"list": "all"})
        request_types = self._validate_list(RequestType, items)
        return {rt.id: rt for rt in request_types}

    async def get_status_type_list(self) -> Dict[int, str]:
        return await self._get_lookup("StatusTypes", 50, "statusTypeName")

    async def get_custom_field_list(self) -> Dict[int, str]:
        """Ticket custom field definitions: id to label."""
        return await self._get_lookup("CustomFieldDefinitions", 50, "label")

    async def get_location_custom_field_list(self) -> Dict[int, str]:
        return await self._get_lookup("CustomFieldDefinitions/Location", 50, "label")

    async def get_asset_custom_field_list(self) -> Dict[int, str]:
        return await self._get_lookup("CustomFieldDefinitions/Asset", 50, "label")

    async def get_tech_list(self) -> Dict[int, str]:
        """Techs: id to display name."""
        return await self._get_lookup("Techs", 50, "displayName")

    async def get_location_list(self) -> Dict[int, str]:
        """Locations that are not deleted: id to location name."""
        return await self._get_lookup(
            "Locations", 250, "locationName", {"qualifier": ACTIVE_LOCATIONS_QUALIFIER}
        )

    async def get_priority_type_list(self) -> Dict[int, str]:
        return await self._get_lookup("PriorityTypes", 10, "priorityTypeName")

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on the WHD API by opening and closing a session.

        Returns:
            Health check result
        """
        start = time.perf_counter()
        try:
            session_key = await self.get_session_key()
            await self.terminate_session(session_key)
            return {
                "status": "healthy",
                "response_time_ms": (time.perf_counter() - start) * 1000
            }
        except WHDAPIError as e:
            if e.status_code in (401, 403):
                return {
                    "status": "authentication_required",
                    "error": "Authentication failed, check WHD credentials"
                }
            return {"status": "unhealthy", "error": str(e)}
        except Exception as e:
            logger.error(f"WHD health check failed: {e}")
            return {"status": "unhealthy", "error": str(e)}
