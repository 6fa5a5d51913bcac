"""クラスター操作のMCPツール定義。"""

from typing import Any

from fastmcp import FastMCP

from partycluster.models.errors import PartyClusterError
from partycluster.services.operator import ClusterOperator


def register_cluster_tools(mcp: FastMCP, operator: ClusterOperator) -> None:
    """クラスター関連のMCPツールを登録する。"""

    @mcp.tool()
    async def create_cluster(name: str, ports: list[int] | None = None) -> dict[str, Any]:
        """新しいクラスターの作成を開始する。

        リソースグループを作成してテンプレートデプロイメントを送信し、
        プロビジョニングの完了を待たずにFQDNを返します。
        同名のクラスターが既に存在する場合はエラーになります。

        Args:
            name: クラスター名（小文字英数字とハイフン、DNSラベルとして有効な名前）。
            ports: 公開するポートのリスト。テンプレートのポート数と一致させる。
        """
        try:
            fqdn = await operator.create_cluster(name, ports or [])
            return {"name": name, "fqdn": fqdn}
        except (PartyClusterError, ValueError) as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def delete_cluster(name: str) -> dict[str, Any]:
        """クラスターの削除を開始する。

        削除は非同期に進むため、get_cluster_statusで完了を確認してください。

        Args:
            name: クラスター名。
        """
        try:
            await operator.delete_cluster(name)
            return {"name": name, "message": f"Deletion of cluster {name} started"}
        except PartyClusterError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def get_cluster_status(name: str) -> dict[str, Any]:
        """クラスターの状態を取得する。

        ClusterNotFound, Creating, Ready, CreateFailed, Deleting, DeleteFailed, Unknown
        のいずれかを、元になったリソースグループとデプロイメントの状態とともに返します。

        Args:
            name: クラスター名。
        """
        try:
            report = await operator.inspect_cluster(name)
            return report.model_dump(mode="json")
        except PartyClusterError as e:
            return {"error": type(e).__name__, "message": str(e)}
