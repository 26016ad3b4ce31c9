import os

import uvicorn

from surf_ai.config import settings
from utils.logging_utils import get_tagged_logger, mask_secret, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def log_enhancement_status() -> None:
    """
    Report whether narratives will be enhanced. A missing key is a normal
    configuration: the rule-based narrative is served as-is.
    """
    if settings.enhancement_configured:
        logger.info("Enhancement enabled (model=%s, key=%s)",
                    settings.enhancement_model, mask_secret(settings.enhancement_api_key))
    else:
        logger.info("Enhancement not configured; set SURF_ENHANCEMENT_API_KEY to enable it")
    if not settings.prediction_api_url:
        logger.info("Prediction service not configured; scoring without external prediction")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="surf_ai_api")
    log_enhancement_status()

    uvicorn.run(
        "surf_ai.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
