import logging

logger = logging.getLogger(__name__)


async def run_detached(label, func, *args, **kwargs):
    """
    Run a fire-and-forget coroutine function outside the caller's control flow.

    Schedule it with FastAPI's BackgroundTasks. The outcome only reaches the log;
    exceptions are never re-raised.
    """
    try:
        result = await func(*args, **kwargs)
    except Exception as e:
        logger.error("❌ DETACHED TASK [%s]: failed: %s", label, e)
        return None
    if result is not None:
        logger.info("DETACHED TASK [%s]: finished with %s", label, result)
    else:
        logger.info("DETACHED TASK [%s]: finished", label)
    return result
