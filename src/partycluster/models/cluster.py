"""クラスター操作関連のデータモデル。"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

# Azure DNSラベルとリソースグループ名の両方で有効な名前
CLUSTER_NAME_PATTERN = r"^[a-z][a-z0-9-]{1,61}[a-z0-9]$"

ResourceGroupStatus = Literal["created", "already-exists"]

Port = Annotated[int, Field(ge=1, le=65535)]


class ClusterOperationStatus(str, Enum):
    """呼び出し側に公開するクラスターのライフサイクル状態。"""

    CLUSTER_NOT_FOUND = "ClusterNotFound"
    CREATING = "Creating"
    READY = "Ready"
    CREATE_FAILED = "CreateFailed"
    DELETING = "Deleting"
    DELETE_FAILED = "DeleteFailed"
    UNKNOWN = "Unknown"


def deployment_name_for(cluster_name: str) -> str:
    """クラスター名からデプロイメント名を導出する。"""
    return f"{cluster_name}dp"


def cluster_fqdn(cluster_name: str, region: str) -> str:
    """クラスターの公開FQDNを組み立てる。"""
    return f"{cluster_name}.{region}.cloudapp.azure.com"


class ClusterRequest(BaseModel):
    """クラスター作成リクエスト。作成呼び出しの間だけ存在する。"""

    name: str = Field(pattern=CLUSTER_NAME_PATTERN)
    ports: list[Port] = Field(default_factory=list)

    @property
    def deployment_name(self) -> str:
        return deployment_name_for(self.name)


class DeploymentReceipt(BaseModel):
    """受け付けられたデプロイメント送信の記録。"""

    resource_group: str
    deployment_name: str
    provisioning_state: str | None = None


class ClusterStatusReport(BaseModel):
    """状態集約の結果と、その元になったリモートの生の状態。"""

    name: str
    status: ClusterOperationStatus
    resource_group_state: str | None = None
    deployment_state: str | None = None
