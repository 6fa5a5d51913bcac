"""クラスター操作のMCPプロンプト定義。"""

from fastmcp import FastMCP


def register_cluster_prompts(mcp: FastMCP) -> None:
    """クラスター関連のMCPプロンプトを登録する。"""

    @mcp.prompt()
    async def cluster_lifecycle(name: str) -> str:
        """クラスターの作成から削除までの流れをガイドするプロンプト。

        Args:
            name: クラスター名。
        """
        return (
            f"クラスター `{name}` を作成し、利用後に削除します。\n\n"
            "## 手順\n\n"
            "1. `get_cluster_status` で `ClusterNotFound` であることを確認してください。\n"
            "2. `create_cluster` に名前とポートを渡して作成を開始してください。返されたFQDNを控えてください。\n"
            "3. `get_cluster_status` を定期的に呼び、`Creating` から `Ready` になるまで待ってください。\n"
            "4. 利用が終わったら `delete_cluster` で削除を開始してください。\n"
            "5. `get_cluster_status` が `Deleting` を経て `ClusterNotFound` になれば削除完了です。\n\n"
            "## 注意事項\n\n"
            "- `NameConflictError` が返された場合は別の名前を使うか、既存のクラスターを先に削除してください。\n"
            "- `CreateFailed` / `DeleteFailed` はリモートでの失敗です。状態に含まれる生の値を確認してください。\n"
            "- ポート数はテンプレートのポートプレースホルダー数と一致させる必要があります。\n"
        )
