"""デプロイメントテンプレートのMCPリソース定義。"""

from fastmcp import FastMCP

from partycluster.storage.snapshots import SnapshotStore


def register_template_resources(mcp: FastMCP, snapshots: SnapshotStore) -> None:
    """テンプレート関連のMCPリソースを登録する。"""

    @mcp.resource("partycluster://templates/template")
    async def cluster_template() -> str:
        """現在のインフラテンプレートを取得する。"""
        return snapshots.current.templates.template_document

    @mcp.resource("partycluster://templates/parameters")
    async def cluster_parameters() -> str:
        """現在のパラメータドキュメントを取得する。

        _CLUSTER_NAME_、_CLUSTER_LOCATION_、_USER_、_PWD_、_PORT<i>_ の
        プレースホルダーを含むバインド前のドキュメントを返します。
        """
        return snapshots.current.templates.parameter_document
