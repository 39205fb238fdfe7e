"""
Minimal async client for the Kubernetes REST API.

Only the calls the deploy executor needs: connectivity and namespace checks,
pod listing, and creating or replacing Deployments.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from slingshot.core.config import settings
from slingshot.core.exceptions import ClusterQueryError
from slingshot.models.kubernetes import KubernetesCluster
from slingshot.schemas.kubernetes import Pod, PodList

logger = logging.getLogger(__name__)

DEPLOYMENTS_PATH = "/apis/apps/v1/namespaces/{namespace}/deployments"


class ClusterClient:
    """
    Client bound to one cluster.

    Query failures (transport errors, unexpected status codes, bodies that do
    not parse) raise ClusterQueryError; they are never reported as "no pods".
    """

    def __init__(
        self,
        cluster: KubernetesCluster,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            cluster: Cluster record with API URL and credentials
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.cluster = cluster
        headers = {"Accept": "application/json"}
        if cluster.token:
            headers["Authorization"] = f"Bearer {cluster.token}"
        self._client = httpx.AsyncClient(
            base_url=cluster.api_url,
            headers=headers,
            timeout=timeout or settings.KUBERNETES_REQUEST_TIMEOUT,
            verify=cluster.verify_ssl if cluster.verify_ssl is not None else True,
            transport=transport,
        )

    async def __aenter__(self) -> "ClusterClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ClusterQueryError(self.cluster.name, f"{method} {path} failed: {e}") from e

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ClusterQueryError(
                self.cluster.name,
                f"{response.request.method} {response.request.url.path} returned invalid JSON",
            ) from e

    def _expect(self, response: httpx.Response, *codes: int) -> None:
        if response.status_code not in codes:
            raise ClusterQueryError(
                self.cluster.name,
                f"{response.request.method} {response.request.url.path} returned {response.status_code}",
            )

    async def connection_valid(self) -> bool:
        """Check that the API server answers."""
        try:
            response = await self._client.get("/api")
        except httpx.HTTPError as e:
            logger.warning(f"Cluster {self.cluster.name} unreachable: {e}")
            return False
        return response.status_code == 200

    async def namespace_exists(self, namespace: str) -> bool:
        """Check that a namespace exists and is visible to our credentials."""
        try:
            response = await self._client.get(f"/api/v1/namespaces/{namespace}")
        except httpx.HTTPError as e:
            logger.warning(f"Namespace lookup on {self.cluster.name} failed: {e}")
            return False
        return response.status_code == 200

    async def get_pods(self, namespace: str, label_selector: str) -> List[Pod]:
        """
        List pods matching a label selector.

        Returns:
            Parsed pods; an empty list when nothing matches

        Raises:
            ClusterQueryError: Non-200 response or malformed body
        """
        path = f"/api/v1/namespaces/{namespace}/pods"
        response = await self._request("GET", path, params={"labelSelector": label_selector})
        self._expect(response, 200)
        try:
            return PodList.model_validate(self._json(response)).items
        except PydanticValidationError as e:
            raise ClusterQueryError(self.cluster.name, f"GET {path} returned an unexpected body: {e}") from e

    async def get_deployment(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Fetch a Deployment, or None when it does not exist."""
        path = f"{DEPLOYMENTS_PATH.format(namespace=namespace)}/{name}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        self._expect(response, 200)
        return self._json(response)

    async def create_deployment(self, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        path = DEPLOYMENTS_PATH.format(namespace=namespace)
        response = await self._request("POST", path, json=body)
        self._expect(response, 200, 201, 202)
        return self._json(response)

    async def replace_deployment(self, namespace: str, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        path = f"{DEPLOYMENTS_PATH.format(namespace=namespace)}/{name}"
        response = await self._request("PUT", path, json=body)
        self._expect(response, 200, 201)
        return self._json(response)


class ClusterClientPool:
    """
    One client per cluster for the lifetime of an execution.

    Tests pass an httpx.MockTransport so every client talks to a stub API.
    """

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport
        self._clients: Dict[str, ClusterClient] = {}

    def client_for(self, cluster: KubernetesCluster) -> ClusterClient:
        key = str(cluster.id)
        if key not in self._clients:
            self._clients[key] = ClusterClient(cluster, timeout=self.timeout, transport=self.transport)
        return self._clients[key]

    async def aclose(self) -> None:
        clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            await client.aclose()
