"""テスト共通フィクスチャ。"""

import shutil
from pathlib import Path

import pytest
import yaml

from partycluster.config import ServerConfig
from partycluster.models.settings import OperatorSettings
from partycluster.services.operator import ClusterOperator
from partycluster.services.retry import RetryPolicy
from partycluster.storage.snapshots import SnapshotStore
from tests.fakes import FakeResourceManager, FakeTokenProvider


@pytest.fixture
def settings_parameters() -> dict[str, str]:
    """ホストから渡される復号済みの設定パラメータ。"""
    return {
        "Region": "westus",
        "ClientID": "client-id",
        "ClientSecret": "client-secret",
        "Authority": "https://login.microsoftonline.com/contoso.onmicrosoft.com",
        "SubscriptionID": "subscription-id",
        "Username": "partyadmin",
        "Password": "P@ssw0rd!",
    }


@pytest.fixture
def operator_settings(settings_parameters: dict[str, str]) -> OperatorSettings:
    return OperatorSettings.from_parameters(settings_parameters)


@pytest.fixture
def config_dir() -> Path:
    """設定ファイルディレクトリ。"""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def template_dir(tmp_path: Path, config_dir: Path) -> Path:
    """書き換え可能なテンプレートディレクトリのコピー。"""
    target = tmp_path / "templates"
    shutil.copytree(config_dir / "templates", target)
    return target


@pytest.fixture
def settings_file(tmp_path: Path, settings_parameters: dict[str, str]) -> Path:
    """AzureSubscriptionSettingsセクションを持つ設定ファイル。"""
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump({"AzureSubscriptionSettings": settings_parameters}), encoding="utf-8")
    return path


@pytest.fixture
def snapshots(settings_file: Path, template_dir: Path) -> SnapshotStore:
    return SnapshotStore.from_sources(settings_file, template_dir)


@pytest.fixture
def retry_policy() -> RetryPolicy:
    """待ち時間なしのリトライポリシー。"""
    return RetryPolicy(max_attempts=3, base_delay_seconds=0, max_delay_seconds=0, call_timeout_seconds=5)


@pytest.fixture
def fake_remote() -> FakeResourceManager:
    return FakeResourceManager()


@pytest.fixture
def fake_token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def operator(
    snapshots: SnapshotStore,
    fake_token_provider: FakeTokenProvider,
    fake_remote: FakeResourceManager,
    retry_policy: RetryPolicy,
) -> ClusterOperator:
    """フェイクのリモートに接続したClusterOperator。"""
    return ClusterOperator(
        snapshots=snapshots,
        token_provider=fake_token_provider,
        remote_factory=lambda token, settings: fake_remote,
        retry=retry_policy,
    )


@pytest.fixture
def server_config(tmp_path: Path, config_dir: Path, settings_file: Path, template_dir: Path) -> ServerConfig:
    """テスト用ServerConfig。"""
    return ServerConfig(
        config_dir=config_dir,
        settings_file=settings_file,
        template_dir=template_dir,
        retry_base_delay_seconds=0,
        retry_max_delay_seconds=0,
    )
