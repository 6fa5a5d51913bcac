"""PartyClusterのカスタム例外クラス。"""


class PartyClusterError(Exception):
    """PartyClusterの基底例外クラス。"""


class ConfigurationError(PartyClusterError):
    """オペレーター設定またはテンプレートの読み込みエラー。"""


class AuthFailureError(PartyClusterError):
    """認証トークンを取得できなかった場合の例外。"""


class NameConflictError(PartyClusterError):
    """同名のリソースグループが既に存在する場合の例外。"""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"ResourceGroup/Cluster already exists: {name}. "
            "Please try passing a different name, or delete the ResourceGroup/Cluster first."
        )
        self.name = name


class ParameterBindingError(PartyClusterError):
    """パラメータドキュメントのプレースホルダーを解決できない場合の例外。"""

    def __init__(self, message: str, placeholders: list[str] | None = None) -> None:
        super().__init__(message)
        self.placeholders = placeholders or []


class RemoteError(PartyClusterError):
    """リモートAPI呼び出しのエラー。"""

    def __init__(self, message: str, operation: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class RemoteUnavailableError(RemoteError):
    """一時的なネットワーク・サービス障害。リトライ対象。"""


class RemoteRequestError(RemoteError):
    """リモートプラットフォームがリクエストを拒否した場合の例外。"""


class DeploymentSubmitError(PartyClusterError):
    """テンプレートデプロイメントの送信に失敗した場合の例外。"""

    def __init__(self, resource_group: str, deployment_name: str, reason: str) -> None:
        super().__init__(
            f"Failed deploying template {deployment_name} to create a cluster in resource group {resource_group}: {reason}"
        )
        self.resource_group = resource_group
        self.deployment_name = deployment_name
        self.reason = reason
