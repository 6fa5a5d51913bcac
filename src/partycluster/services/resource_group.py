"""クラスターを格納するリソースグループの管理。"""

import logging

from partycluster.models.cluster import ResourceGroupStatus
from partycluster.services.arm import ResourceManager
from partycluster.services.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)


class ResourceGroupManager:
    """リソースグループの存在確認・作成・削除を行う。"""

    def __init__(self, remote: ResourceManager, retry: RetryPolicy) -> None:
        self._remote = remote
        self._retry = retry

    async def ensure_exists(self, name: str, region: str) -> ResourceGroupStatus:
        """リソースグループが無ければ作成する。

        既存のリソースグループを採用するかどうかは呼び出し側が判断する。

        Returns:
            新規作成した場合は ``"created"``、既に存在した場合は ``"already-exists"``。
        """
        exists = await call_with_retry(
            "check resource group existence",
            lambda: self._remote.resource_group_exists(name),
            self._retry,
        )
        if exists:
            return "already-exists"

        await call_with_retry(
            "create resource group",
            lambda: self._remote.create_resource_group(name, region),
            self._retry,
        )
        logger.info("Created resource group %s in %s", name, region)
        return "created"

    async def delete(self, name: str) -> None:
        """リソースグループの非同期削除を開始する。完了は待たない。"""
        await call_with_retry(
            "delete resource group",
            lambda: self._remote.begin_delete_resource_group(name),
            self._retry,
        )
        logger.info("Deletion of resource group %s accepted", name)
