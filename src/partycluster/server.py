"""FastMCPベースのMCPサーバーエントリポイント。"""

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from partycluster.config import ServerConfig
from partycluster.prompts.cluster import register_cluster_prompts
from partycluster.resources.templates import register_template_resources
from partycluster.services.arm import AzureResourceManager, ResourceManagerFactory
from partycluster.services.operator import ClusterOperator
from partycluster.services.token import ClientSecretTokenProvider, TokenProvider
from partycluster.storage.snapshots import SnapshotStore
from partycluster.tools.cluster import register_cluster_tools
from partycluster.tools.config import register_config_tools


def create_server(
    config: ServerConfig | None = None,
    token_provider: TokenProvider | None = None,
    remote_factory: ResourceManagerFactory | None = None,
) -> FastMCP:
    """PartyCluster MCPサーバーを作成し、ツール・リソース・プロンプトを登録する。

    Args:
        config: サーバー設定。Noneの場合はデフォルト設定を使用。
        token_provider: トークン取得の実装。Noneの場合はClientSecretTokenProvider。
        remote_factory: リモートセッションの生成関数。Noneの場合はAzureResourceManager。

    Returns:
        設定済みのFastMCPインスタンス。

    Raises:
        ConfigurationError: 設定ファイルまたはテンプレートを読み込めない場合。
    """
    if config is None:
        config = ServerConfig()

    mcp = FastMCP("partycluster")

    # スナップショット層
    snapshots = SnapshotStore.from_sources(config.settings_file, config.template_dir)

    # サービス層
    operator = ClusterOperator(
        snapshots=snapshots,
        token_provider=token_provider or ClientSecretTokenProvider(),
        remote_factory=remote_factory or AzureResourceManager.from_token,
        retry=config.retry_policy(),
    )

    # MCPインターフェース登録
    register_cluster_tools(mcp, operator)
    register_config_tools(mcp, snapshots, config.settings_file, config.template_dir)
    register_template_resources(mcp, snapshots)
    register_cluster_prompts(mcp)

    # ヘルスチェックエンドポイント
    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "snapshot_version": snapshots.current.version})

    return mcp
