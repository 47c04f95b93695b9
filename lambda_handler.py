"""
AWS Lambda Handler for the FastAPI Application.

Wraps the ASGI app with Mangum so API Gateway and Lambda Function URL events
are served by FastAPI.

Lambda Configuration:
    Handler: lambda_handler.handler
    Runtime: Python 3.12
    Timeout: 29 seconds (API Gateway limit)

Environment Variables:
    OPENAI_API_KEY: OpenAI API key (optional; no-AI mode without it)
    DYNAMODB_TABLE_NAME: Pipeline events table (optional)
    FRONTEND_URL: Frontend domain for CORS configuration (optional)
"""

from mangum import Mangum

from talentsonar.api.server import app
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)
logger.info("Lambda handler initialized")

handler = Mangum(
    app,
    lifespan="off",
    text_mime_types=["application/json", "text/plain"],
)
