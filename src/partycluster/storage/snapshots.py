"""オペレーター設定とテンプレートのスナップショット管理。"""

import logging
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from partycluster.models.errors import ConfigurationError
from partycluster.models.settings import OperatorSettings, OperatorSnapshot, TemplateBundle

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "AzureSubscriptionSettings"
TEMPLATE_FILE = "PartyClusterTemplate.json"
PARAMETERS_FILE = "PartyClusterTemplate.Parameters.json"

SnapshotListener = Callable[[OperatorSnapshot], None]


def load_settings_parameters(settings_file: Path) -> dict[str, str]:
    """設定ファイルから ``AzureSubscriptionSettings`` セクションを読み込む。

    値はホスト側で復号済みであることを前提とする。

    Raises:
        ConfigurationError: ファイルまたはセクションが存在しない場合。
    """
    try:
        with open(settings_file, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Settings file not found: {settings_file}") from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Settings file is not valid YAML: {settings_file}") from e

    section = data.get(SETTINGS_SECTION) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ConfigurationError(f"Section {SETTINGS_SECTION} not found in {settings_file}")
    return {str(key): "" if value is None else str(value) for key, value in section.items()}


def load_template_bundle(template_dir: Path) -> TemplateBundle:
    """テンプレートとパラメータドキュメントを一緒に読み込む。

    Raises:
        ConfigurationError: どちらかのファイルが存在しない場合。
    """
    template_file = template_dir / TEMPLATE_FILE
    parameters_file = template_dir / PARAMETERS_FILE
    try:
        template_document = template_file.read_text(encoding="utf-8")
        parameter_document = parameters_file.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"Template file not found: {e.filename}") from None
    return TemplateBundle(
        template_document=template_document,
        parameter_document=parameter_document,
        source=str(template_dir),
    )


class SnapshotStore:
    """現在のOperatorSnapshotへの参照を保持し、リロード時に丸ごと差し替える。

    読み取り側は操作の開始時に ``current`` を一度だけ読み、その操作の間は
    同じスナップショットを使い続ける。書き込み側はロックで直列化するが、
    読み取り側はロックを取らない。
    """

    def __init__(self, snapshot: OperatorSnapshot) -> None:
        self._snapshot = snapshot
        self._write_lock = threading.Lock()
        self._listeners: list[SnapshotListener] = []

    @classmethod
    def from_sources(cls, settings_file: Path, template_dir: Path) -> "SnapshotStore":
        """設定ファイルとテンプレートディレクトリから初期スナップショットを構築する。"""
        settings = OperatorSettings.from_parameters(load_settings_parameters(settings_file))
        templates = load_template_bundle(template_dir)
        return cls(OperatorSnapshot(settings=settings, templates=templates))

    @property
    def current(self) -> OperatorSnapshot:
        return self._snapshot

    def replace(
        self,
        settings: OperatorSettings | None = None,
        templates: TemplateBundle | None = None,
    ) -> OperatorSnapshot:
        """設定・テンプレートの一方または両方を1回の参照差し替えで置き換える。

        Returns:
            差し替え後のスナップショット。
        """
        with self._write_lock:
            previous = self._snapshot
            snapshot = OperatorSnapshot(
                settings=settings if settings is not None else previous.settings,
                templates=templates if templates is not None else previous.templates,
                version=previous.version + 1,
            )
            self._snapshot = snapshot
            listeners = list(self._listeners)

        logger.info("Operator snapshot replaced (version %d)", snapshot.version)
        for listener in listeners:
            listener(snapshot)
        return snapshot

    def on_settings_changed(self, parameters: Mapping[str, str]) -> OperatorSnapshot:
        """設定パッケージ変更通知のハンドラ。新しい設定を構築してから差し替える。"""
        return self.replace(settings=OperatorSettings.from_parameters(parameters))

    def on_templates_changed(self, template_dir: Path) -> OperatorSnapshot:
        """データパッケージ変更通知のハンドラ。2つのドキュメントを一緒に読み直す。"""
        return self.replace(templates=load_template_bundle(template_dir))

    def reload_from_sources(self, settings_file: Path, template_dir: Path) -> OperatorSnapshot:
        """設定とテンプレートを両方読み直し、1回の差し替えで反映する。"""
        settings = OperatorSettings.from_parameters(load_settings_parameters(settings_file))
        templates = load_template_bundle(template_dir)
        return self.replace(settings=settings, templates=templates)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """差し替え後に呼ばれるリスナーを登録し、登録解除用の関数を返す。"""
        with self._write_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._write_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
