import logging

from rq import SimpleWorker, Queue

from app.core.config import settings
from app.core.queue import GENERATION_QUEUE_NAME
from app.core.redis import redis_client

listen = [GENERATION_QUEUE_NAME]

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("worker")

if __name__ == '__main__':
    queues = [Queue(name, connection=redis_client) for name in listen]
    worker = SimpleWorker(queues, connection=redis_client)
    logger.info("Listening on queues: %s", listen)
    worker.work()
