"""デプロイメントパラメータのバインドとテンプレートデプロイメントの送信。"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from partycluster.models.cluster import DeploymentReceipt, Port, deployment_name_for
from partycluster.models.errors import (
    AuthFailureError,
    ConfigurationError,
    DeploymentSubmitError,
    ParameterBindingError,
    RemoteError,
)
from partycluster.models.settings import TemplateBundle
from partycluster.services.arm import ResourceManager
from partycluster.services.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

CLUSTER_NAME_PLACEHOLDER = "_CLUSTER_NAME_"
CLUSTER_LOCATION_PLACEHOLDER = "_CLUSTER_LOCATION_"
USER_PLACEHOLDER = "_USER_"
PASSWORD_PLACEHOLDER = "_PWD_"
FIXED_PLACEHOLDERS = (
    CLUSTER_NAME_PLACEHOLDER,
    CLUSTER_LOCATION_PLACEHOLDER,
    USER_PLACEHOLDER,
    PASSWORD_PLACEHOLDER,
)

_PORT_PLACEHOLDER_RE = re.compile(r"_PORT(\d+)_")
# 置換前のドキュメント中のプレースホルダー形式のトークン
_TOKEN_RE = re.compile(r"(?<![A-Za-z0-9_])_[A-Z][A-Z0-9_]*_(?![A-Za-z0-9_])")


def port_placeholder(index: int) -> str:
    """1始まりの番号に対応するポートプレースホルダーを返す。"""
    return f"_PORT{index}_"


def _json_text(value: str) -> str:
    """JSON文字列リテラルの中に埋め込める形にエスケープする。"""
    return json.dumps(value)[1:-1]


class ParameterBinding(BaseModel):
    """パラメータドキュメントに埋め込むクラスター固有の値。"""

    model_config = ConfigDict(frozen=True)

    cluster_name: str
    location: str
    username: SecretStr
    password: SecretStr
    ports: list[Port] = Field(default_factory=list)

    def substitutions(self) -> dict[str, str]:
        """プレースホルダーから置換後テキストへの対応を返す。ポートは入力順に1から番号付けする。"""
        values = {
            CLUSTER_NAME_PLACEHOLDER: _json_text(self.cluster_name),
            CLUSTER_LOCATION_PLACEHOLDER: _json_text(self.location),
            USER_PLACEHOLDER: _json_text(self.username.get_secret_value()),
            PASSWORD_PLACEHOLDER: _json_text(self.password.get_secret_value()),
        }
        for index, port in enumerate(self.ports, start=1):
            values[port_placeholder(index)] = str(port)
        return values


def validate_placeholders(document: str, binding: ParameterBinding) -> None:
    """ドキュメント中のプレースホルダーとバインドする値が対応しているか検証する。

    検証は置換前のドキュメントに対して行う。エラーメッセージにはプレースホルダー名
    だけを含め、バインドする値は含めない。

    Raises:
        ParameterBindingError: 固定プレースホルダーの欠落、ポート数の不一致、
            または対応する値のないプレースホルダーがある場合。
    """
    missing = [placeholder for placeholder in FIXED_PLACEHOLDERS if placeholder not in document]
    if missing:
        raise ParameterBindingError(
            f"Parameter document is missing placeholders: {', '.join(missing)}",
            missing,
        )

    declared = {int(index) for index in _PORT_PLACEHOLDER_RE.findall(document)}
    expected = set(range(1, len(binding.ports) + 1))
    if declared != expected:
        mismatched = [port_placeholder(index) for index in sorted(declared ^ expected)]
        raise ParameterBindingError(
            f"Parameter document declares {len(declared)} port placeholder(s) "
            f"but {len(binding.ports)} port(s) were supplied: {', '.join(mismatched)}",
            mismatched,
        )

    unresolved = sorted(set(_TOKEN_RE.findall(document)) - binding.substitutions().keys())
    if unresolved:
        raise ParameterBindingError(
            f"Parameter document has unresolved placeholders: {', '.join(unresolved)}",
            unresolved,
        )


def bind_parameters(document: str, binding: ParameterBinding, *, strict: bool = True) -> str:
    """パラメータドキュメントのプレースホルダーを置換する。

    置換は1回の正規表現パスで行うため、置換後のテキストが再度走査されることはない。

    Args:
        document: プレースホルダーを含むパラメータドキュメント。
        binding: 埋め込む値。
        strict: Trueの場合、置換前にプレースホルダーの対応を検証する。
            Falseの場合は与えられたプレースホルダーだけを置換し、他は変更しない。

    Raises:
        ParameterBindingError: strictで検証に失敗した場合。
    """
    if strict:
        validate_placeholders(document, binding)

    values = binding.substitutions()
    pattern = re.compile("|".join(re.escape(key) for key in sorted(values, key=len, reverse=True)))
    return pattern.sub(lambda match: values[match.group(0)], document)


def parse_parameters(rendered: str) -> dict[str, Any]:
    """バインド済みのパラメータドキュメントをデプロイメント用の辞書にする。

    ARMパラメータファイル形式の場合は ``parameters`` オブジェクトを取り出す。
    値はバインド済みのため、ここではプレースホルダーの検査を行わない。

    Raises:
        ParameterBindingError: JSONとして不正、またはオブジェクトでない場合。
    """
    try:
        data = json.loads(rendered)
    except json.JSONDecodeError as e:
        # ドキュメント本文には管理者パスワードが含まれるため位置だけを返す
        raise ParameterBindingError(
            f"Bound parameter document is not valid JSON: {e.msg} at line {e.lineno} column {e.colno}"
        ) from None
    if not isinstance(data, dict):
        raise ParameterBindingError("Parameter document must be a JSON object")

    parameters = data.get("parameters", data)
    if not isinstance(parameters, dict):
        raise ParameterBindingError("Parameter document 'parameters' must be a JSON object")
    return parameters


def _load_template(templates: TemplateBundle) -> dict[str, Any]:
    try:
        template = json.loads(templates.template_document)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Template document from {templates.source or 'memory'} is not valid JSON") from e
    if not isinstance(template, dict):
        raise ConfigurationError("Template document must be a JSON object")
    return template


@dataclass(frozen=True)
class PreparedDeployment:
    """送信可能な状態までバインド・検証したデプロイメント。"""

    resource_group: str
    deployment_name: str
    template: dict[str, Any] = field(repr=False)
    # 管理者パスワードを含むため表示しない
    parameters: dict[str, Any] = field(repr=False)


def prepare_deployment(
    resource_group: str,
    templates: TemplateBundle,
    binding: ParameterBinding,
) -> PreparedDeployment:
    """テンプレートを読み込み、パラメータをバインドして検証する。リモート呼び出しは行わない。

    Raises:
        ConfigurationError: テンプレートがJSONとして不正な場合。
        ParameterBindingError: パラメータのバインドに失敗した場合。
    """
    return PreparedDeployment(
        resource_group=resource_group,
        deployment_name=deployment_name_for(resource_group),
        template=_load_template(templates),
        parameters=parse_parameters(bind_parameters(templates.parameter_document, binding)),
    )


class DeploymentSubmitter:
    """パラメータをバインドし、増分モードのデプロイメントを送信する。"""

    def __init__(self, remote: ResourceManager, retry: RetryPolicy) -> None:
        self._remote = remote
        self._retry = retry

    async def submit(
        self,
        resource_group: str,
        templates: TemplateBundle,
        binding: ParameterBinding,
    ) -> DeploymentReceipt:
        """デプロイメントを送信する。プロビジョニングの完了は待たない。

        Args:
            resource_group: デプロイ先のリソースグループ名。
            templates: 操作開始時に取得したテンプレートのスナップショット。
            binding: パラメータドキュメントに埋め込む値。

        Returns:
            受け付けられたデプロイメントの記録。

        Raises:
            ParameterBindingError: パラメータのバインドに失敗した場合。
            DeploymentSubmitError: リモートのデプロイメント作成が失敗した場合。
        """
        return await self.submit_prepared(prepare_deployment(resource_group, templates, binding))

    async def submit_prepared(self, prepared: PreparedDeployment) -> DeploymentReceipt:
        """バインド済みのデプロイメントを送信する。

        Raises:
            DeploymentSubmitError: リモートのデプロイメント作成が失敗した場合。
            AuthFailureError: リモートがトークンを拒否した場合。
        """
        try:
            state = await call_with_retry(
                "create deployment",
                lambda: self._remote.create_or_update_deployment(
                    prepared.resource_group,
                    prepared.deployment_name,
                    prepared.template,
                    prepared.parameters,
                ),
                self._retry,
            )
        except AuthFailureError as e:
            logger.error(
                "Failed deploying template to create a cluster in resource group %s: %s",
                prepared.resource_group,
                e,
            )
            raise
        except RemoteError as e:
            logger.error(
                "Failed deploying template to create a cluster in resource group %s: %s",
                prepared.resource_group,
                e,
            )
            raise DeploymentSubmitError(prepared.resource_group, prepared.deployment_name, str(e)) from e

        logger.info(
            "Deployment %s in resource group %s accepted (%s)",
            prepared.deployment_name,
            prepared.resource_group,
            state,
        )
        return DeploymentReceipt(
            resource_group=prepared.resource_group,
            deployment_name=prepared.deployment_name,
            provisioning_state=state,
        )
