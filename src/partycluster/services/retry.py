"""リモート呼び出しのリトライポリシー。"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

from partycluster.models.errors import RemoteUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """一時的な障害に対する指数バックオフ付きのリトライ設定。"""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=30.0, ge=0)
    # 1回のリモート呼び出しの期限。Noneなら無制限
    call_timeout_seconds: float | None = Field(default=60.0, gt=0)

    def delay_for(self, attempt: int) -> float:
        """attempt回目の失敗後に待つ秒数を返す。"""
        backoff = self.base_delay_seconds * (2 ** (attempt - 1))
        jitter = random.uniform(0, backoff * 0.2)
        return min(backoff + jitter, self.max_delay_seconds)


async def _invoke(operation: str, func: Callable[[], Awaitable[T]], timeout: float | None) -> T:
    if timeout is None:
        return await func()
    try:
        return await asyncio.wait_for(func(), timeout=timeout)
    except TimeoutError as e:
        raise RemoteUnavailableError(f"{operation} timed out after {timeout}s", operation=operation) from e


async def call_with_retry(operation: str, func: Callable[[], Awaitable[T]], policy: RetryPolicy) -> T:
    """funcを期限付きで実行し、RemoteUnavailableErrorの場合のみリトライする。

    認証エラー・名前衝突・リクエスト拒否などはリトライせずにそのまま送出する。
    ローカルの期限切れはリモート側の操作を取り消さない。

    Args:
        operation: ログ出力用の操作名。
        func: 呼び出しごとに新しいコルーチンを返す関数。
        policy: リトライポリシー。

    Raises:
        RemoteUnavailableError: 最後の試行も一時的な障害で失敗した場合。
    """
    attempt = 1
    while True:
        try:
            return await _invoke(operation, func, policy.call_timeout_seconds)
        except RemoteUnavailableError as e:
            if attempt >= policy.max_attempts:
                raise
            wait_time = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                operation,
                attempt,
                policy.max_attempts,
                wait_time,
                e,
            )
            await asyncio.sleep(wait_time)
            attempt += 1
