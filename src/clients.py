"""
REST API client for Azure Arc-enabled servers (Microsoft.HybridCompute).
"""

import logging
import time
from typing import Dict, List, Optional

import requests
from azure.identity import DefaultAzureCredential

from models import InstalledExtension, Machine

logger = logging.getLogger(__name__)

API_BASE = "https://management.azure.com"
API_VERSION = "2024-07-10"
ARM_SCOPE = "https://management.azure.com/.default"


class ArcRestClient:
    """REST client for the Azure Resource Manager HybridCompute API."""

    RETRYABLE_STATUS_CODES = {409, 429, 500, 502, 503, 504}

    def __init__(
        self,
        subscription_id: str,
        credential=None,
        timeout_s: int = 60,
        max_retries: int = 0,
        base_delay: float = 5.0,
    ):
        """
        Initialize the Arc REST client.

        Args:
            subscription_id: Azure subscription ID
            credential: azure-identity credential (DefaultAzureCredential if None)
            timeout_s: Request timeout in seconds
            max_retries: Retries for transient errors (0 = single attempt)
            base_delay: Base delay for exponential backoff
        """
        self.subscription_id = subscription_id
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.base_delay = base_delay

        self.credential = credential or DefaultAzureCredential()
        self.session = requests.Session()

    def _url(self, path: str) -> str:
        """Construct full ARM URL from a resource path."""
        return f"{API_BASE}/{path.lstrip('/')}"

    def _machines_path(self, resource_group: str) -> str:
        return (
            f"subscriptions/{self.subscription_id}/resourceGroups/{resource_group}"
            "/providers/Microsoft.HybridCompute/machines"
        )

    def _headers(self) -> Dict[str, str]:
        token = self.credential.get_token(ARM_SCOPE)
        return {
            "Authorization": f"Bearer {token.token}",
            "Content-Type": "application/json",
        }

    def _request_with_retry(self, method: str, url: str, **kwargs) -> dict:
        """
        Execute HTTP request, retrying transient errors with exponential backoff.

        Args:
            method: HTTP method (GET, POST)
            url: Request URL
            **kwargs: Additional request parameters

        Returns:
            Dictionary with 'response' and 'status_code' keys

        Raises:
            RuntimeError: If all attempts fail
        """
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                if method.upper() == "GET":
                    resp = self.session.get(
                        url, headers=self._headers(), timeout=self.timeout_s, **kwargs
                    )
                elif method.upper() == "POST":
                    resp = self.session.post(
                        url, headers=self._headers(), timeout=self.timeout_s, **kwargs
                    )
                else:
                    raise ValueError(f"Unsupported method: {method}")
            except requests.RequestException as e:
                last_error = str(e)
                if attempt < self.max_retries:
                    delay = self._calculate_delay(attempt)
                    logger.warning(
                        f"Request error: {e}, attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                    )
                    time.sleep(delay)
                continue

            if resp.status_code in self.RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                delay = self._calculate_delay(attempt, resp)
                logger.warning(
                    f"Retryable error {resp.status_code} ({self._error_message(resp)}), attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                time.sleep(delay)
                continue

            return {"response": resp, "status_code": resp.status_code}

        raise RuntimeError(f"Request to {url} failed. Last error: {last_error}")

    @staticmethod
    def _error_message(resp) -> str:
        try:
            return resp.json().get("error", {}).get("message", "")
        except ValueError:
            return ""

    def _calculate_delay(self, attempt: int, resp=None) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number
            resp: Optional response object (to check Retry-After header)

        Returns:
            Delay in seconds
        """
        if resp is not None and "Retry-After" in resp.headers:
            try:
                return float(resp.headers["Retry-After"])
            except ValueError:
                pass

        delay = self.base_delay * (2**attempt)
        jitter = delay * 0.2 * (0.5 - time.time() % 1)
        return min(delay + jitter, 180.0)

    def _get_all(self, url: str, params: Optional[Dict] = None) -> List[Dict]:
        """GET a list endpoint and follow nextLink pagination."""
        items: List[Dict] = []
        next_url: Optional[str] = url
        next_params = params

        while next_url:
            result = self._request_with_retry("GET", next_url, params=next_params)
            resp = result["response"]
            if resp.status_code != 200:
                raise RuntimeError(f"GET {next_url} failed ({resp.status_code}): {resp.text}")

            data = resp.json()
            items.extend(data.get("value", []))
            # nextLink already carries api-version and skip token
            next_url = data.get("nextLink")
            next_params = None

        return items

    def list_machines(self, resource_group: str) -> List[Machine]:
        """
        List all Arc machines in a resource group.

        Args:
            resource_group: Resource group name

        Returns:
            List of Machine objects (unfiltered)

        Raises:
            RuntimeError: If API call fails
        """
        url = self._url(self._machines_path(resource_group))
        machines: List[Machine] = []
        for item in self._get_all(url, params={"api-version": API_VERSION}):
            props = item.get("properties", {})
            machines.append(
                Machine(
                    name=item["name"],
                    provisioning_state=props.get("provisioningState", ""),
                    status=props.get("status", ""),
                    resource_group=resource_group,
                    location=item.get("location", ""),
                )
            )
        return machines

    def list_extensions(
        self, resource_group: str, machine_name: str
    ) -> List[InstalledExtension]:
        """
        List extensions installed on an Arc machine.

        Args:
            resource_group: Resource group name
            machine_name: Arc machine name

        Returns:
            List of InstalledExtension objects

        Raises:
            RuntimeError: If API call fails
        """
        url = self._url(f"{self._machines_path(resource_group)}/{machine_name}/extensions")
        extensions: List[InstalledExtension] = []
        for item in self._get_all(url, params={"api-version": API_VERSION}):
            props = item.get("properties", {})
            instance_view = props.get("instanceView") or {}
            name = item["name"]
            extensions.append(
                InstalledExtension(
                    machine_name=machine_name,
                    name=name,
                    publisher=props.get("publisher", ""),
                    type_name=props.get("type") or instance_view.get("type") or name,
                    version=str(
                        props.get("typeHandlerVersion")
                        or instance_view.get("typeHandlerVersion")
                        or ""
                    ),
                    provisioning_state=props.get("provisioningState", ""),
                )
            )
        return extensions

    def upgrade_extensions(
        self, resource_group: str, machine_name: str, targets: Dict[str, Dict[str, str]]
    ) -> str:
        """
        Initiate an extension upgrade on an Arc machine.

        Args:
            resource_group: Resource group name
            machine_name: Arc machine name
            targets: Mapping of extension key to {"targetVersion": <version>}

        Returns:
            Operation handle URL (empty if the service returned none)

        Raises:
            RuntimeError: If API call fails
        """
        url = self._url(
            f"{self._machines_path(resource_group)}/{machine_name}/upgradeExtensions"
        )
        result = self._request_with_retry(
            "POST",
            url,
            params={"api-version": API_VERSION},
            json={"extensionTargets": targets},
        )
        resp = result["response"]
        if resp.status_code not in (200, 202):
            raise RuntimeError(
                f"upgradeExtensions failed ({resp.status_code}): {resp.text}"
            )
        return resp.headers.get("Azure-AsyncOperation") or resp.headers.get(
            "Location", ""
        )

    def get_operation_status(self, handle: str) -> str:
        """
        Get the status of an asynchronous ARM operation.

        Args:
            handle: Azure-AsyncOperation or Location URL

        Returns:
            Status string, e.g. InProgress, Succeeded, Failed

        Raises:
            RuntimeError: If API call fails
        """
        result = self._request_with_retry("GET", handle)
        resp = result["response"]
        if resp.status_code == 202:
            return "InProgress"
        if resp.status_code not in (200, 204):
            raise RuntimeError(
                f"Get operation failed ({resp.status_code}): {resp.text}"
            )
        if resp.status_code == 204 or not resp.content:
            return "Succeeded"
        return resp.json().get("status") or "Succeeded"
