"""PartyClusterサーバーの設定管理。"""

from pathlib import Path

from pydantic_settings import BaseSettings

from partycluster.services.retry import RetryPolicy

_PACKAGE_ROOT = Path(__file__).parent
_REPO_ROOT = _PACKAGE_ROOT.parent.parent


class ServerConfig(BaseSettings):
    """サーバー設定。環境変数から読み込み可能。"""

    model_config = {"env_prefix": "PARTYCLUSTER_"}

    config_dir: Path = _REPO_ROOT / "config"
    # AzureSubscriptionSettingsセクションを持つYAML（復号済みの値）
    settings_file: Path = _REPO_ROOT / "config" / "settings.yaml"
    template_dir: Path = _REPO_ROOT / "config" / "templates"
    host: str = "0.0.0.0"
    port: int = 8000
    url_token: str = ""
    log_level: str = "INFO"

    # リモート呼び出しのリトライ
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0
    call_timeout_seconds: float | None = 60.0

    def retry_policy(self) -> RetryPolicy:
        """設定値からRetryPolicyを構築する。"""
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            base_delay_seconds=self.retry_base_delay_seconds,
            max_delay_seconds=self.retry_max_delay_seconds,
            call_timeout_seconds=self.call_timeout_seconds,
        )
