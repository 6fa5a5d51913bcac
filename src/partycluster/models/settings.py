"""オペレーター設定とテンプレートのスナップショットモデル。"""

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from partycluster.models.errors import ConfigurationError

# ホストから渡される設定パラメータ名とモデルのフィールド名の対応
SETTINGS_PARAMETERS: dict[str, str] = {
    "Region": "region",
    "ClientID": "client_id",
    "ClientSecret": "client_secret",
    "Authority": "authority",
    "SubscriptionID": "subscription_id",
    "Username": "admin_username",
    "Password": "admin_password",
}


class OperatorSettings(BaseModel):
    """復号済みのオペレーター認証情報。

    リロード時はフィールド単位で更新せず、インスタンスごと置き換える。
    """

    model_config = ConfigDict(frozen=True)

    region: str = Field(min_length=1)
    client_id: SecretStr
    client_secret: SecretStr
    authority: SecretStr
    subscription_id: SecretStr
    admin_username: SecretStr
    admin_password: SecretStr

    @field_validator(
        "client_id",
        "client_secret",
        "authority",
        "subscription_id",
        "admin_username",
        "admin_password",
    )
    @classmethod
    def _require_value(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("must not be empty")
        return value

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, str]) -> "OperatorSettings":
        """名前付き設定パラメータからOperatorSettingsを構築する。

        Args:
            parameters: ``Region``、``ClientID`` などをキーとする復号済みの値。

        Raises:
            ConfigurationError: 必須パラメータが欠落または空の場合。
        """
        missing = [name for name in SETTINGS_PARAMETERS if not parameters.get(name)]
        if missing:
            raise ConfigurationError(f"Missing operator settings: {', '.join(missing)}")
        return cls(**{field: parameters[name] for name, field in SETTINGS_PARAMETERS.items()})


class TemplateBundle(BaseModel):
    """インフラテンプレートとパラメータドキュメントの組。

    両方のドキュメントは常に同じデータパッケージから一緒に読み込まれる。
    """

    model_config = ConfigDict(frozen=True)

    template_document: str
    parameter_document: str
    source: str = ""


class OperatorSnapshot(BaseModel):
    """1回の操作の間に参照される設定とテンプレートの一貫したスナップショット。"""

    model_config = ConfigDict(frozen=True)

    settings: OperatorSettings
    templates: TemplateBundle
    version: int = 1
