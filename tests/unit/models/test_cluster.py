"""クラスターモデルのユニットテスト。"""

import pytest
from pydantic import ValidationError

from partycluster.models.cluster import (
    ClusterOperationStatus,
    ClusterRequest,
    ClusterStatusReport,
    cluster_fqdn,
    deployment_name_for,
)


class TestClusterRequest:
    def test_valid_request(self) -> None:
        request = ClusterRequest(name="partyclub7", ports=[20000, 20001])
        assert request.name == "partyclub7"
        assert request.ports == [20000, 20001]
        assert request.deployment_name == "partyclub7dp"

    def test_ports_default_to_empty(self) -> None:
        assert ClusterRequest(name="partyclub7").ports == []

    @pytest.mark.parametrize("name", ["PartyClub", "7party", "party_club", "p", "party-", "a" * 64, ""])
    def test_invalid_name_rejected(self, name: str) -> None:
        with pytest.raises(ValidationError):
            ClusterRequest(name=name)

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_out_of_range_port_rejected(self, port: int) -> None:
        with pytest.raises(ValidationError):
            ClusterRequest(name="partyclub7", ports=[80, port])

    def test_port_order_is_preserved(self) -> None:
        request = ClusterRequest(name="partyclub7", ports=[443, 80, 8080])
        assert request.ports == [443, 80, 8080]


class TestNaming:
    def test_deployment_name(self) -> None:
        assert deployment_name_for("partyclub7") == "partyclub7dp"

    def test_cluster_fqdn(self) -> None:
        assert cluster_fqdn("partyclub7", "westus") == "partyclub7.westus.cloudapp.azure.com"


class TestClusterStatusReport:
    def test_serializes_status_value(self) -> None:
        report = ClusterStatusReport(
            name="partyclub7",
            status=ClusterOperationStatus.READY,
            resource_group_state="Succeeded",
            deployment_state="Succeeded",
        )
        data = report.model_dump(mode="json")
        assert data["status"] == "Ready"
        assert data["resource_group_state"] == "Succeeded"

    def test_not_found_has_no_states(self) -> None:
        report = ClusterStatusReport(name="x1", status=ClusterOperationStatus.CLUSTER_NOT_FOUND)
        assert report.resource_group_state is None
        assert report.deployment_state is None

    def test_status_values(self) -> None:
        assert {status.value for status in ClusterOperationStatus} == {
            "ClusterNotFound",
            "Creating",
            "Ready",
            "CreateFailed",
            "Deleting",
            "DeleteFailed",
            "Unknown",
        }
