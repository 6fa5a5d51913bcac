"""リソースグループとデプロイメントの状態からクラスター状態を導出する。"""

import asyncio
import logging
from collections.abc import Callable
from typing import Literal

from partycluster.models.cluster import ClusterOperationStatus, ClusterStatusReport, deployment_name_for
from partycluster.services.arm import ResourceManager
from partycluster.services.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

StateKind = Literal["resource_group", "deployment"]
UnrecognizedStateHook = Callable[[StateKind, str], None]

# ここで扱うよりも広い、プラットフォームが返し得るプロビジョニング状態
KNOWN_PROVISIONING_STATES = frozenset(
    {
        "Accepted",
        "Canceled",
        "Created",
        "Creating",
        "Deleted",
        "Deleting",
        "Failed",
        "Moving",
        "NotSpecified",
        "Ready",
        "Running",
        "Succeeded",
        "Updating",
    }
)


def reduce_status(resource_group_state: str, deployment_state: str) -> ClusterOperationStatus:
    """2つの生の状態文字列を1つのクラスター状態に集約する。

    最初に一致した規則を採用する。リソースグループの削除・失敗は
    デプロイメントの状態より優先される。判定は完全一致ではなく部分一致で、
    プラットフォーム側の状態語彙の追加に追従できるようにしている。
    """
    if "Failed" in resource_group_state:
        return ClusterOperationStatus.DELETE_FAILED
    if "Deleting" in resource_group_state:
        return ClusterOperationStatus.DELETING
    if "Accepted" in deployment_state or "Running" in deployment_state:
        return ClusterOperationStatus.CREATING
    if "Failed" in deployment_state:
        return ClusterOperationStatus.CREATE_FAILED
    if "Succeeded" in deployment_state:
        return ClusterOperationStatus.READY
    return ClusterOperationStatus.UNKNOWN


class StatusReconciler:
    """リモートの状態を毎回取得して集約する。内部状態は持たない。"""

    def __init__(
        self,
        remote: ResourceManager,
        retry: RetryPolicy,
        on_unrecognized_state: UnrecognizedStateHook | None = None,
    ) -> None:
        self._remote = remote
        self._retry = retry
        self._on_unrecognized_state = on_unrecognized_state

    def _observe(self, kind: StateKind, state: str) -> None:
        if state in KNOWN_PROVISIONING_STATES:
            return
        logger.warning("Unrecognized %s provisioning state: %r", kind, state)
        if self._on_unrecognized_state is not None:
            self._on_unrecognized_state(kind, state)

    async def inspect(self, name: str) -> ClusterStatusReport:
        """クラスター状態と、その元になった生の状態を返す。

        デプロイメントが存在しなければリソースグループの状態に関わらず
        ``ClusterNotFound`` を返す。存在確認は状態の集約より先に行う。
        """
        deployment_name = deployment_name_for(name)
        exists = await call_with_retry(
            "check deployment existence",
            lambda: self._remote.deployment_exists(name, deployment_name),
            self._retry,
        )
        if not exists:
            # リソースグループ自体が存在しない場合もここに該当する
            return ClusterStatusReport(name=name, status=ClusterOperationStatus.CLUSTER_NOT_FOUND)

        deployment_state, resource_group_state = await asyncio.gather(
            call_with_retry(
                "get deployment",
                lambda: self._remote.get_deployment_state(name, deployment_name),
                self._retry,
            ),
            call_with_retry(
                "get resource group",
                lambda: self._remote.get_resource_group_state(name),
                self._retry,
            ),
        )
        if deployment_state is None or resource_group_state is None:
            # 存在確認の後に削除が完了した
            return ClusterStatusReport(
                name=name,
                status=ClusterOperationStatus.CLUSTER_NOT_FOUND,
                resource_group_state=resource_group_state,
                deployment_state=deployment_state,
            )

        self._observe("resource_group", resource_group_state)
        self._observe("deployment", deployment_state)
        return ClusterStatusReport(
            name=name,
            status=reduce_status(resource_group_state, deployment_state),
            resource_group_state=resource_group_state,
            deployment_state=deployment_state,
        )

    async def get_status(self, name: str) -> ClusterOperationStatus:
        report = await self.inspect(name)
        return report.status
