# cms/core/limiter.py

"""
Redis 카운터 기반의 요청 빈도 제한(rate limit) 의존성입니다.

클라이언트(기본: IP)마다 "<prefix>:<endpoint>:<id>:count" 키에 남은 요청 수를 저장하고
duration 동안 max 번까지만 허용합니다. 초과하면 LimitException(10140, HTTP 429)을 던집니다.
Redis 클라이언트는 lifespan이 만든 ARQ 풀(app.state.redis)을 함께 사용하며,
풀이 없으면 (ARQ_ENABLED=False) 제한 없이 통과시킵니다.

    @router.post("/login", dependencies=[Depends(RateLimiter(endpoint="login", max=10, duration=60))])
"""

import logging
import math
from typing import Callable, Iterable, Optional

from fastapi import Request, Response, status
from redis.exceptions import RedisError

from cms.core.exceptions import Forbidden, LimitException

logger = logging.getLogger(__name__)

DEFAULT_MAX = 2500
DEFAULT_DURATION = 60 * 60  # 초

REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_HEADER = "X-RateLimit-Reset"
TOTAL_HEADER = "X-RateLimit-Limit"


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


class RateLimiter:
    """
    FastAPI 의존성으로 사용하는 요청 빈도 제한기입니다.

    - max / duration: 지정하지 않으면 config의 limit.max / limit.duration(초)을 사용합니다.
    - identify: 요청에서 클라이언트 식별자를 꺼내는 함수. None을 반환하면 제한하지 않습니다.
    - whitelist: 제한하지 않는 식별자 / blacklist: 항상 거부(Forbidden)하는 식별자
    """

    def __init__(
        self,
        endpoint: str = "",
        *,
        max: Optional[int] = None,
        duration: Optional[int] = None,
        prefix: str = "limit",
        identify: Callable[[Request], Optional[str]] = client_ip,
        whitelist: Iterable[str] = (),
        blacklist: Iterable[str] = (),
    ):
        self.endpoint = endpoint
        self.max = max
        self.duration = duration
        self.prefix = prefix
        self.identify = identify
        self.whitelist = frozenset(whitelist)
        self.blacklist = frozenset(blacklist)

    def _limits(self, request: Request):
        app_config = getattr(request.app.state, "config", None)
        max_requests = self.max
        duration = self.duration
        if app_config is not None:
            max_requests = max_requests or app_config.get_item("limit.max")
            duration = duration or app_config.get_item("limit.duration")
        return max_requests or DEFAULT_MAX, duration or DEFAULT_DURATION

    def key(self, client_id: str) -> str:
        return f"{self.prefix}:{self.endpoint}:{client_id}:count"

    async def __call__(self, request: Request, response: Response) -> None:
        redis = getattr(request.app.state, "redis", None)
        client_id = self.identify(request)
        if client_id is None or client_id in self.whitelist:
            return
        if client_id in self.blacklist:
            raise Forbidden(message="access denied")
        if redis is None:
            return

        max_requests, duration = self._limits(request)
        name = self.key(client_id)
        try:
            await self._consume(redis, name, client_id, max_requests, duration, response)
        except RedisError:
            # Redis 장애로 요청 처리 전체가 막히지 않도록 제한 없이 통과시킵니다.
            logger.exception("Rate limit check failed for %s", name)

    async def _consume(self, redis, name: str, client_id: str, max_requests: int, duration: int,
                       response: Response) -> None:
        current = await redis.get(name)
        response.headers[TOTAL_HEADER] = str(max_requests)

        if current is None:
            await redis.set(name, max_requests - 1, px=duration * 1000, nx=True)
            response.headers[REMAINING_HEADER] = str(max_requests - 1)
            response.headers[RESET_HEADER] = str(duration)
            logger.debug("remaining %s/%s %s", max_requests - 1, max_requests, client_id)
            return

        remaining = int(current)
        expires = await redis.pttl(name)
        if remaining - 1 >= 0:
            await redis.decr(name)
            response.headers[REMAINING_HEADER] = str(remaining - 1)
            response.headers[RESET_HEADER] = str(math.ceil(max(expires, 0) / 1000))
            logger.debug("remaining %s/%s %s", remaining - 1, max_requests, client_id)
            return

        if expires < 0:
            # 만료 시간이 없는 키는 새 구간으로 다시 시작합니다.
            logger.info("%s is stuck. Resetting.", name)
            await redis.set(name, max_requests - 1, px=duration * 1000)
            return

        retry_after = math.ceil(expires / 1000)
        logger.info("Rate limit exceeded for %s (%s/%s)", client_id, max_requests, max_requests)
        raise LimitException(
            message=f"too many requests, please retry in {retry_after} seconds",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={
                "Retry-After": str(retry_after),
                REMAINING_HEADER: "0",
                TOTAL_HEADER: str(max_requests),
            },
        )
