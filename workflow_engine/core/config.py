import logging
import os

from dotenv import load_dotenv

load_dotenv()


class EngineConfig:
    LOG_LEVEL: str = os.getenv("WORKFLOW_ENGINE__LOG_LEVEL", "INFO")
    VERSION: str = os.getenv("WORKFLOW_ENGINE__VERSION", "0.1.0")
    DATABASE_URL: str = os.getenv("WORKFLOW_ENGINE__DATABASE_URL", "sqlite:///data/workflow_engine.db")
    MAX_RETRY_ATTEMPTS: int = int(os.getenv("WORKFLOW_ENGINE__MAX_RETRY_ATTEMPTS", "3"))
    RETRY_DELAY_MS: int = int(os.getenv("WORKFLOW_ENGINE__RETRY_DELAY_MS", "1000"))
    CIRCUIT_FAILURE_THRESHOLD: int = int(os.getenv("WORKFLOW_ENGINE__CIRCUIT_FAILURE_THRESHOLD", "5"))
    CIRCUIT_RECOVERY_TIMEOUT: int = int(os.getenv("WORKFLOW_ENGINE__CIRCUIT_RECOVERY_TIMEOUT", "60"))
    MAX_PARALLEL_NODES: int = int(os.getenv("WORKFLOW_ENGINE__MAX_PARALLEL_NODES", "4"))
    MAX_FRACTAL_DEPTH: int = int(os.getenv("WORKFLOW_ENGINE__MAX_FRACTAL_DEPTH", "10"))


logging.basicConfig(level=EngineConfig.LOG_LEVEL)
logger = logging.getLogger("workflow-engine")
