"""トークン取得のユニットテスト。"""

import time
from unittest.mock import patch

import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError, ServiceRequestError

from partycluster.models.errors import AuthFailureError, ConfigurationError, RemoteUnavailableError
from partycluster.models.settings import OperatorSettings
from partycluster.services.token import MANAGEMENT_SCOPE, ClientSecretTokenProvider, split_authority


class TestSplitAuthority:
    def test_url(self) -> None:
        assert split_authority("https://login.microsoftonline.com/contoso.onmicrosoft.com") == (
            "login.microsoftonline.com",
            "contoso.onmicrosoft.com",
        )

    def test_without_scheme(self) -> None:
        assert split_authority("login.microsoftonline.com/tenant-id/") == ("login.microsoftonline.com", "tenant-id")

    def test_missing_tenant(self) -> None:
        with pytest.raises(ConfigurationError):
            split_authority("https://login.microsoftonline.com/")


class TestClientSecretTokenProvider:
    async def test_acquires_token(self, operator_settings: OperatorSettings) -> None:
        token = AccessToken("jwt", int(time.time()) + 3600)
        with patch("partycluster.services.token.ClientSecretCredential") as credential_class:
            credential_class.return_value.get_token.return_value = token

            result = await ClientSecretTokenProvider().acquire_token(operator_settings)

        assert result == token
        credential_class.assert_called_once_with(
            tenant_id="contoso.onmicrosoft.com",
            client_id="client-id",
            client_secret="client-secret",
            authority="login.microsoftonline.com",
        )
        credential_class.return_value.get_token.assert_called_once_with(MANAGEMENT_SCOPE)
        credential_class.return_value.close.assert_called_once()

    async def test_rejected_credentials(self, operator_settings: OperatorSettings) -> None:
        with patch("partycluster.services.token.ClientSecretCredential") as credential_class:
            credential = credential_class.return_value
            credential.get_token.side_effect = ClientAuthenticationError(message="AADSTS7000215")

            with pytest.raises(AuthFailureError) as exc_info:
                await ClientSecretTokenProvider().acquire_token(operator_settings)

        assert str(exc_info.value) == "Failed to obtain the JWT token"
        credential.close.assert_called_once()

    async def test_empty_token(self, operator_settings: OperatorSettings) -> None:
        with patch("partycluster.services.token.ClientSecretCredential") as credential_class:
            credential_class.return_value.get_token.return_value = AccessToken("", 0)

            with pytest.raises(AuthFailureError):
                await ClientSecretTokenProvider().acquire_token(operator_settings)

    async def test_unreachable_identity_provider(self, operator_settings: OperatorSettings) -> None:
        with patch("partycluster.services.token.ClientSecretCredential") as credential_class:
            credential_class.return_value.get_token.side_effect = ServiceRequestError(message="connection refused")

            with pytest.raises(RemoteUnavailableError) as exc_info:
                await ClientSecretTokenProvider().acquire_token(operator_settings)

        assert exc_info.value.operation == "acquire token"

    async def test_invalid_authority(self, settings_parameters: dict[str, str]) -> None:
        settings = OperatorSettings.from_parameters({**settings_parameters, "Authority": "https://nohost"})
        with patch("partycluster.services.token.ClientSecretCredential") as credential_class:
            with pytest.raises(ConfigurationError):
                await ClientSecretTokenProvider().acquire_token(settings)
        credential_class.assert_not_called()
