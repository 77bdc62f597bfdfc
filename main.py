"""
Main entrypoint: classify one token observation and print the verdict JSON.

Same arguments as backend_argus.tools.classify_token:
    python main.py observation.json [--vector] [--model PATH] [--patterns]

Env: ARGUS_MODEL_PATH, ARGUS_METRICS_URL, ARGUS_COLLAPSE_FALLBACK, LOG_LEVEL, LOG_FORMAT.
"""

# Configure structured JSON logging before other imports that may log
from backend_argus.argus_logging import get_logger
from backend_argus.tools.classify_token import main

logger = get_logger("main")


if __name__ == "__main__":
    logger.debug("main_started")
    raise SystemExit(main())
