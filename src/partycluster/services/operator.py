"""クラスターの作成・削除・状態取得を行うファサード。"""

import logging
from collections.abc import Iterable

from partycluster.models.cluster import (
    ClusterOperationStatus,
    ClusterRequest,
    ClusterStatusReport,
    cluster_fqdn,
)
from partycluster.models.errors import NameConflictError
from partycluster.models.settings import OperatorSnapshot
from partycluster.services.arm import ResourceManager, ResourceManagerFactory
from partycluster.services.deployment import DeploymentSubmitter, ParameterBinding, prepare_deployment
from partycluster.services.resource_group import ResourceGroupManager
from partycluster.services.retry import RetryPolicy, call_with_retry
from partycluster.services.status import StatusReconciler, UnrecognizedStateHook
from partycluster.services.token import TokenProvider
from partycluster.storage.snapshots import SnapshotStore

logger = logging.getLogger(__name__)


class ClusterOperator:
    """トークン取得からリモート呼び出しまでを1操作ごとに順番に実行する。

    各操作は開始時にスナップショットを1回だけ取得し、操作の最後まで
    同じ設定とテンプレートを使う。異なるクラスター名の操作は互いに独立しており、
    同名クラスターに対する並行操作の順序付けはリモートプラットフォームに委ねる。
    """

    def __init__(
        self,
        snapshots: SnapshotStore,
        token_provider: TokenProvider,
        remote_factory: ResourceManagerFactory,
        retry: RetryPolicy | None = None,
        on_unrecognized_state: UnrecognizedStateHook | None = None,
    ) -> None:
        self._snapshots = snapshots
        self._token_provider = token_provider
        self._remote_factory = remote_factory
        self._retry = retry or RetryPolicy()
        self._on_unrecognized_state = on_unrecognized_state

    async def _connect(self, snapshot: OperatorSnapshot) -> ResourceManager:
        """トークンを取得し、この操作専用のリモートセッションを作成する。"""
        token = await call_with_retry(
            "acquire token",
            lambda: self._token_provider.acquire_token(snapshot.settings),
            self._retry,
        )
        return self._remote_factory(token, snapshot.settings)

    async def create_cluster(self, name: str, ports: Iterable[int]) -> str:
        """新しいクラスターの作成を開始する。

        プロビジョニングの完了は待たない。完了は ``get_status`` で確認する。

        Args:
            name: クラスター名。リソースグループ名とDNSラベルを兼ねる。
            ports: 公開するポート。順番に ``_PORT1_``、``_PORT2_``… に対応する。

        Returns:
            作成されるクラスターのFQDN。

        Raises:
            ValidationError: 名前またはポートが不正な場合。
            NameConflictError: 同名のリソースグループが既に存在する場合。
            ParameterBindingError: テンプレートのプレースホルダーとポート数が一致しない場合。
            DeploymentSubmitError: デプロイメントの送信に失敗した場合。
            AuthFailureError: トークンを取得できない場合。
        """
        request = ClusterRequest(name=name, ports=list(ports))
        snapshot = self._snapshots.current
        settings = snapshot.settings

        # リモート呼び出しの前にバインドを検証し、不整合で空のリソースグループを残さない
        binding = ParameterBinding(
            cluster_name=request.name,
            location=settings.region,
            username=settings.admin_username,
            password=settings.admin_password,
            ports=request.ports,
        )
        prepared = prepare_deployment(request.name, snapshot.templates, binding)

        remote = await self._connect(snapshot)
        try:
            status = await ResourceGroupManager(remote, self._retry).ensure_exists(request.name, settings.region)
            if status == "already-exists":
                raise NameConflictError(request.name)
            receipt = await DeploymentSubmitter(remote, self._retry).submit_prepared(prepared)
        finally:
            await remote.close()

        fqdn = cluster_fqdn(request.name, settings.region)
        logger.info(
            "Creation of cluster %s started (deployment %s, state %s, fqdn %s)",
            request.name,
            receipt.deployment_name,
            receipt.provisioning_state,
            fqdn,
        )
        return fqdn

    async def delete_cluster(self, name: str) -> None:
        """クラスターの削除を開始する。完了はポーリングで確認する。"""
        snapshot = self._snapshots.current
        remote = await self._connect(snapshot)
        try:
            await ResourceGroupManager(remote, self._retry).delete(name)
        finally:
            await remote.close()

    async def inspect_cluster(self, name: str) -> ClusterStatusReport:
        """クラスター状態と元になったリモートの状態を返す。"""
        snapshot = self._snapshots.current
        remote = await self._connect(snapshot)
        try:
            reconciler = StatusReconciler(remote, self._retry, self._on_unrecognized_state)
            return await reconciler.inspect(name)
        finally:
            await remote.close()

    async def get_status(self, name: str) -> ClusterOperationStatus:
        report = await self.inspect_cluster(name)
        return report.status
