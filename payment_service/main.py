import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI

from payment_service.config import settings
from payment_service.database import close_db, init_db
from payment_service.errors import add_error_handlers
from payment_service.logger import get_logger
from payment_service.routes import router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(f"{settings.service_name} running on port {settings.port}")
    yield
    await close_db()


app = FastAPI(title=settings.service_name, lifespan=lifespan)
add_error_handlers(app)
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
