"""
TopicMind Worker Entry Point

Run with: python main.py
Config: TOPICMIND_CONFIG points at an optional YAML file; TOPICMIND_* env vars override it.
"""

import asyncio
import os

from topicmind.config import Config
from topicmind.services.engine import TopicMindEngine
from topicmind.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


async def run() -> None:
    config = Config.from_env_or_yaml(yaml_path=os.getenv("TOPICMIND_CONFIG", "config.yaml"))

    setup_logging(config.logging)

    logger.info(
        f"Starting TopicMind worker (llm={config.llm.provider}, store={config.store.backend}, "
        f"queue={config.queue.backend})"
    )

    engine = TopicMindEngine.from_config(config)
    await engine.initialize()

    try:
        await engine.run_worker()
    finally:
        await engine.close()


if __name__ == "__main__":
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Worker interrupted, shutting down")
