"""設定リロードのMCPツール定義。"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from partycluster.models.errors import PartyClusterError
from partycluster.storage.snapshots import SnapshotStore


def register_config_tools(mcp: FastMCP, snapshots: SnapshotStore, settings_file: Path, template_dir: Path) -> None:
    """設定関連のMCPツールを登録する。"""

    @mcp.tool()
    async def reload_configuration() -> dict[str, Any]:
        """オペレーター設定とテンプレートをディスクから読み直す。

        読み込みに失敗した場合は現在の設定がそのまま使われます。
        実行中の操作は開始時点の設定で最後まで実行されます。
        """
        try:
            snapshot = snapshots.reload_from_sources(settings_file, template_dir)
        except (PartyClusterError, ValueError) as e:
            return {"error": type(e).__name__, "message": str(e)}
        return {
            "version": snapshot.version,
            "region": snapshot.settings.region,
            "template_source": snapshot.templates.source,
        }
