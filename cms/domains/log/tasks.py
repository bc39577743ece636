# cms/domains/log/tasks.py

import logging
from datetime import UTC, datetime, timedelta

from cms.core.database import get_async_session_context

from . import crud as log_crud

logger = logging.getLogger(__name__)

LOG_RETENTION_DAYS = 180


async def purge_old_logs_task(ctx, retention_days: int = LOG_RETENTION_DAYS):
    """
    ARQ 워커에 의해 실행될 주기적인 작업 로그 정리 태스크.
    보존 기간이 지난 cms_log 레코드를 삭제합니다.
    """
    before = datetime.now(UTC) - timedelta(days=retention_days)
    async with get_async_session_context() as db:
        removed = await log_crud.log.purge_before(db, before=before)
    logger.info("Purged %d operation logs older than %s", removed, before.isoformat())
    return {"status": "success", "removed": removed}
