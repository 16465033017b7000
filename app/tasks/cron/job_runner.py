from datetime import datetime
from typing import Any, Dict, Optional, Type

from app.db.session import AsyncSessionLocal, engine
from app.services.notifications.base import BaseReminderJob
from app.utils.context import request_id_scope


async def execute_job(
    job_class: Type[BaseReminderJob],
    request_id: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Run a job in its own session from a Celery worker process."""
    try:
        with request_id_scope(request_id):
            async with AsyncSessionLocal() as db_session:
                job = job_class(db_session, now=now, request_id=request_id)
                result = await job.run()
                return result.model_dump(mode="json", exclude_none=True)
    finally:
        # each asyncio.run gets a new loop; pooled connections must not outlive it
        await engine.dispose()
