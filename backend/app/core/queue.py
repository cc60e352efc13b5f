from rq import Queue

from app.core.redis import redis_client

GENERATION_QUEUE_NAME = "generation_queue"

generation_queue = Queue(GENERATION_QUEUE_NAME, connection=redis_client)
