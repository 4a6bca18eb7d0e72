"""
Blocking client for the remote SCIM 2.0 directory
"""

import os
import logging
from typing import Any, Dict, List, Optional

import requests

from errors import MappingError, StatusError, TransportError
from schema_mapper import add_member_patch, remove_member_patch
from scim_models import SCIM_MEDIA_TYPE


logger = logging.getLogger(__name__)


class ScimClient:
    """
    Narrow client for the SCIM directory: list/get/create/update/delete for
    Users and Groups plus single-member patches on Groups.

    Every call either returns the decoded JSON body (or None for an empty body)
    or raises TransportError / StatusError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or os.getenv("SCIM_BASE_URL", "")).rstrip("/")
        self.client_id = client_id if client_id is not None else os.getenv("SCIM_CLIENT_ID", "")
        self.client_secret = client_secret if client_secret is not None else os.getenv("SCIM_CLIENT_SECRET", "")
        self.timeout = float(timeout or os.getenv("SCIM_TIMEOUT_SECONDS", "30"))
        self.page_size = int(page_size or os.getenv("SCIM_PAGE_SIZE", "100"))
        self.session = session

    def connect(self):
        """Create the HTTP session used for all directory calls."""
        if self.session is not None:
            return

        logger.info(f"Connecting to SCIM directory: {self.base_url}")

        session = requests.Session()
        if self.client_id:
            session.auth = (self.client_id, self.client_secret)
        session.headers.update({
            "Accept": SCIM_MEDIA_TYPE,
            "Content-Type": SCIM_MEDIA_TYPE,
        })
        self.session = session

    def close(self):
        """Close the HTTP session."""
        if self.session is not None:
            self.session.close()
            self.session = None
            logger.debug("SCIM session closed")

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        if self.session is None:
            self.connect()

        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, json=payload, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.status_code // 100 != 2:
            raise StatusError(response.status_code, response.text, method=method, url=url)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise MappingError(f"{method} {url} returned a body that is not JSON: {e}") from e

    def _list(self, path: str) -> List[Dict[str, Any]]:
        """Fetch every resource of a collection, following SCIM pagination."""
        resources: List[Dict[str, Any]] = []
        start_index = 1

        while True:
            body = self._request("GET", path, params={"startIndex": start_index, "count": self.page_size})
            if not isinstance(body, dict):
                raise MappingError(f"GET {path} returned no list response")

            total = body.get("totalResults")
            page = body.get("Resources")
            if page is None:
                if total == 0:
                    break
                raise MappingError(f"GET {path} list response has no Resources")
            if not isinstance(page, list):
                raise MappingError(f"GET {path} Resources is not a list")

            resources.extend(page)

            if not page:
                break
            if isinstance(total, int):
                if len(resources) >= total:
                    break
            elif len(page) < self.page_size:
                # Without totalResults only a short page marks the end
                break
            start_index += len(page)
            logger.debug(f"Fetching next page of {path} (loaded {len(resources)} of {total})")

        return resources

    # ---------- Users ----------

    def list_users(self) -> List[Dict[str, Any]]:
        return self._list("/Users")

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/Users/{user_id}")

    def create_user(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/Users", payload)

    def update_user(self, user_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._request("PUT", f"/Users/{user_id}", payload)

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/Users/{user_id}")

    # ---------- Groups ----------

    def list_groups(self) -> List[Dict[str, Any]]:
        return self._list("/Groups")

    def get_group(self, group_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/Groups/{group_id}")

    def create_group(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/Groups", payload)

    def update_group(self, group_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._request("PUT", f"/Groups/{group_id}", payload)

    def delete_group(self, group_id: str) -> None:
        self._request("DELETE", f"/Groups/{group_id}")

    def patch_group_add_member(self, group_id: str, user_id: str) -> None:
        self._request("PATCH", f"/Groups/{group_id}", add_member_patch(user_id))

    def patch_group_remove_member(self, group_id: str, user_id: str) -> None:
        self._request("PATCH", f"/Groups/{group_id}", remove_member_patch(user_id))
