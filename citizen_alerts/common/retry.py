"""
Retry utilities for Citizen Alerts.

Backoff helpers used by the network adapters (backend fetch and
notification publish). The filtering core never retries.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

T = TypeVar('T')

RetryHook = Callable[[int, BaseException, float], None]


def backoff_delay(attempt: int, base: float, max_delay: float, jitter: bool = False) -> float:
    """
    attempt번째 재시도의 대기 시간(초)을 계산합니다.

    Args:
        attempt: 재시도 횟수 (1부터 시작)
        base: 기본 지연 시간 (초)
        max_delay: 최대 지연 시간 (초)
        jitter: True면 [0.5, 1.0) 배율을 곱함
    """
    delay = min(max_delay, base * (2 ** max(0, attempt - 1)))
    if jitter:
        delay *= 0.5 + random.random() * 0.5
    return delay


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[RetryHook] = None,
) -> T:
    """
    지수 백오프와 함께 비동기 함수를 재시도합니다.

    retry_on에 속하지 않는 예외는 즉시 전파됩니다. 모든 시도가 실패하면
    마지막 예외를 그대로 다시 발생시킵니다.

    Args:
        func: 재시도할 비동기 함수
        max_retries: 최대 재시도 횟수 (최초 시도 제외)
        base_delay: 기본 지연 시간 (초)
        max_delay: 최대 지연 시간 (초)
        jitter: 지터 적용 여부
        retry_on: 재시도 대상 예외 타입
        on_retry: (재시도 횟수, 예외, 대기 시간)을 받는 콜백
    """
    attempt = 0
    while True:
        try:
            return await func()
        except retry_on as e:
            attempt += 1
            if attempt > max_retries:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay, jitter)
            if on_retry is not None:
                on_retry(attempt, e, delay)
            await asyncio.sleep(delay)
