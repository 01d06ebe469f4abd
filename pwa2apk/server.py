# pwa2apk/server.py
import logging

import uvicorn
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from pwa2apk.api.builds import router as builds_router
from pwa2apk.api.config import router as config_router
from pwa2apk.api.root import router as root_router
from pwa2apk.core.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from pwa2apk.core.database import engine, init_models

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger("pwa2apk")

app = FastAPI(title="PWA2APK Studio")

app.include_router(root_router)
app.include_router(config_router)
app.include_router(builds_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_db():
    await init_models()
    logger.info("Database ready")


@app.on_event("shutdown")
async def shutdown_db():
    await engine.dispose()


def main() -> None:
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)


if __name__ == "__main__":
    main()
