from datetime import datetime
from decimal import Decimal
import json
import logging
import os

from aiokafka import AIOKafkaProducer

KAFKA_BOOTSTRAP_SERVERS = os.getenv("KAFKA_BOOTSTRAP_SERVERS")
logger = logging.getLogger(__name__)
producer = None

class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)

async def get_producer():
    global producer
    if producer is None:
        producer = AIOKafkaProducer(bootstrap_servers=KAFKA_BOOTSTRAP_SERVERS)
        await producer.start()
    return producer

async def stop_producer():
    global producer
    if producer is not None:
        await producer.stop()
        producer = None

def encode_event(event: dict) -> bytes:
    try:
        return json.dumps(event, cls=CustomJSONEncoder).encode('utf-8')
    except TypeError as e:
        logger.exception(e)
        raise

async def produce_event(topic: str, event: dict):
    if not KAFKA_BOOTSTRAP_SERVERS:
        logger.info(f"Kafka not configured, dropping event for topic {topic}: {event}")
        return
    producer = await get_producer()
    await producer.send_and_wait(topic, encode_event(event))
    logger.info(f"Produced event to topic {topic}: {event}")
