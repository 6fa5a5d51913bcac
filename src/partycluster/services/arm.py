"""Azure Resource Managerとの境界。

ClusterOperatorは ``ResourceManager`` プロトコルだけに依存し、
``AzureResourceManager`` がazure-mgmt-resourceのSDK呼び出しと
例外の変換を担う。
"""

import asyncio
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from azure.core.credentials import AccessToken
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.resource.resources.models import (
    Deployment,
    DeploymentMode,
    DeploymentProperties,
    ResourceGroup,
)

from partycluster.models.errors import AuthFailureError, RemoteRequestError, RemoteUnavailableError
from partycluster.models.settings import OperatorSettings

T = TypeVar("T")

# リトライで回復し得るHTTPステータス
_TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class ResourceManager(Protocol):
    """リソースグループとデプロイメントを操作するリモートサービス。"""

    async def resource_group_exists(self, name: str) -> bool: ...

    async def create_resource_group(self, name: str, location: str) -> None: ...

    async def begin_delete_resource_group(self, name: str) -> None: ...

    async def get_resource_group_state(self, name: str) -> str | None: ...

    async def deployment_exists(self, resource_group: str, deployment_name: str) -> bool: ...

    async def create_or_update_deployment(
        self,
        resource_group: str,
        deployment_name: str,
        template: dict[str, Any],
        parameters: dict[str, Any],
    ) -> str | None: ...

    async def get_deployment_state(self, resource_group: str, deployment_name: str) -> str | None: ...

    async def close(self) -> None: ...


ResourceManagerFactory = Callable[[AccessToken, OperatorSettings], ResourceManager]


class _FixedTokenCredential:
    """操作ごとに取得済みのトークンをSDKに渡すための資格情報。"""

    def __init__(self, token: AccessToken) -> None:
        self._token = token

    def get_token(self, *scopes: str, **kwargs: Any) -> AccessToken:
        return self._token


def _state_text(state: Any) -> str:
    """SDKのプロビジョニング状態（列挙型または文字列）を文字列にする。"""
    if state is None:
        return ""
    return str(getattr(state, "value", state))


class AzureResourceManager:
    """ResourceManagementClientによるResourceManagerの実装。

    SDKは同期APIのため、各呼び出しを ``asyncio.to_thread`` で実行する。
    長時間操作（リソースグループ削除・デプロイメント作成）は ``polling=False`` で
    開始のみ行い、完了は待たない。クライアントを閉じた後に動き続けるポーリング
    スレッドは作らない。
    """

    def __init__(self, client: ResourceManagementClient) -> None:
        self._client = client

    @classmethod
    def from_token(cls, token: AccessToken, settings: OperatorSettings) -> "AzureResourceManager":
        """取得済みトークンとサブスクリプションIDからクライアントを作成する。"""
        client = ResourceManagementClient(
            credential=_FixedTokenCredential(token),
            subscription_id=settings.subscription_id.get_secret_value(),
        )
        return cls(client)

    async def _call(self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """SDK呼び出しをスレッドで実行し、例外をPartyClusterの例外に変換する。"""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except ClientAuthenticationError as e:
            raise AuthFailureError(f"{operation} was rejected: {e.message}") from e
        except (ServiceRequestError, ServiceResponseError) as e:
            raise RemoteUnavailableError(f"{operation} failed: {e}", operation=operation) from e
        except HttpResponseError as e:
            if e.status_code in _TRANSIENT_STATUS_CODES:
                raise RemoteUnavailableError(
                    f"{operation} failed: {e.message}", operation=operation, status_code=e.status_code
                ) from e
            raise RemoteRequestError(
                f"{operation} failed: {e.message}", operation=operation, status_code=e.status_code
            ) from e

    async def resource_group_exists(self, name: str) -> bool:
        return await self._call("check resource group existence", self._client.resource_groups.check_existence, name)

    async def create_resource_group(self, name: str, location: str) -> None:
        await self._call(
            "create resource group",
            self._client.resource_groups.create_or_update,
            name,
            ResourceGroup(location=location),
        )

    async def begin_delete_resource_group(self, name: str) -> None:
        await self._call("delete resource group", self._client.resource_groups.begin_delete, name, polling=False)

    async def get_resource_group_state(self, name: str) -> str | None:
        try:
            group = await self._call("get resource group", self._client.resource_groups.get, name)
        except RemoteRequestError as e:
            if isinstance(e.__cause__, ResourceNotFoundError):
                return None
            raise
        return _state_text(group.properties.provisioning_state if group.properties else None)

    async def deployment_exists(self, resource_group: str, deployment_name: str) -> bool:
        return await self._call(
            "check deployment existence",
            self._client.deployments.check_existence,
            resource_group,
            deployment_name,
        )

    async def create_or_update_deployment(
        self,
        resource_group: str,
        deployment_name: str,
        template: dict[str, Any],
        parameters: dict[str, Any],
    ) -> str | None:
        deployment = Deployment(
            properties=DeploymentProperties(
                mode=DeploymentMode.INCREMENTAL,
                template=template,
                parameters=parameters,
            ),
        )
        poller = await self._call(
            "create deployment",
            self._client.deployments.begin_create_or_update,
            resource_group,
            deployment_name,
            deployment,
            polling=False,
        )
        # polling=Falseでは初回レスポンスをそのまま返すため待機しない
        result = poller.result()
        return _state_text(result.properties.provisioning_state if result and result.properties else None) or None

    async def get_deployment_state(self, resource_group: str, deployment_name: str) -> str | None:
        try:
            result = await self._call("get deployment", self._client.deployments.get, resource_group, deployment_name)
        except RemoteRequestError as e:
            if isinstance(e.__cause__, ResourceNotFoundError):
                return None
            raise
        return _state_text(result.properties.provisioning_state if result.properties else None)

    async def close(self) -> None:
        self._client.close()
