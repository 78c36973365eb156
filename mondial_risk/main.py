import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mondial_risk.config import settings
from mondial_risk.database import close_connection, init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (database: %s)", settings.PROJECT_NAME, settings.DATABASE_PATH)
    init_db()
    yield
    close_connection()
    logger.info("Shut down %s", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Matches, stadiums, ticket issuance, ownership transfers and transfer-based fraud risk scoring",
    version=settings.PROJECT_VERSION,
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


from mondial_risk.routers import fraud, tickets, venues  # noqa: E402

app.include_router(tickets.router, prefix="/api/v1")
app.include_router(venues.router, prefix="/api/v1")
app.include_router(fraud.router, prefix="/api/v1")
