"""OAuthクライアントクレデンシャルフローによるトークン取得。"""

import asyncio
from typing import Protocol
from urllib.parse import urlparse

from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError, ServiceRequestError, ServiceResponseError
from azure.identity import ClientSecretCredential

from partycluster.models.errors import AuthFailureError, ConfigurationError, RemoteUnavailableError
from partycluster.models.settings import OperatorSettings

# Azure管理APIを対象とするスコープ
MANAGEMENT_SCOPE = "https://management.azure.com/.default"


class TokenProvider(Protocol):
    """オペレーター設定をベアラートークンに交換する。"""

    async def acquire_token(self, settings: OperatorSettings) -> AccessToken: ...


def split_authority(authority: str) -> tuple[str, str]:
    """OAuthオーソリティURLを (ホスト, テナントID) に分解する。

    Raises:
        ConfigurationError: テナントIDを含まないURLの場合。
    """
    parsed = urlparse(authority if "://" in authority else f"https://{authority}")
    segments = [segment for segment in parsed.path.split("/") if segment]
    if not parsed.netloc or not segments:
        raise ConfigurationError("Authority must be a URL of the form https://<host>/<tenant>")
    return parsed.netloc, segments[0]


class ClientSecretTokenProvider:
    """azure-identityのClientSecretCredentialでトークンを取得する。

    キャッシュは持たず、トップレベルの操作ごとに新しいトークンを取得する。
    """

    def __init__(self, scope: str = MANAGEMENT_SCOPE) -> None:
        self._scope = scope

    async def acquire_token(self, settings: OperatorSettings) -> AccessToken:
        """トークンを取得する。

        Raises:
            AuthFailureError: IDプロバイダーが結果を返さない、または認証を拒否した場合。
            RemoteUnavailableError: IDプロバイダーに到達できない場合。
        """
        authority_host, tenant_id = split_authority(settings.authority.get_secret_value())
        credential = ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=settings.client_id.get_secret_value(),
            client_secret=settings.client_secret.get_secret_value(),
            authority=authority_host,
        )
        try:
            token = await asyncio.to_thread(credential.get_token, self._scope)
        except ClientAuthenticationError as e:
            raise AuthFailureError("Failed to obtain the JWT token") from e
        except (ServiceRequestError, ServiceResponseError) as e:
            raise RemoteUnavailableError(f"acquire token failed: {e}", operation="acquire token") from e
        finally:
            credential.close()

        if token is None or not token.token:
            raise AuthFailureError("Failed to obtain the JWT token")
        return token
