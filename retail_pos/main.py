from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.log_config import configure_logging
from .db.database import create_db_and_tables
from .routers.catalog import router as catalog_router
from .routers.checkout import router as checkout_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Retail POS API",
    description="Catalog costing and checkout settlement for a retail point of sale",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog_router, prefix="/catalog", tags=["catalog"])
app.include_router(checkout_router, prefix="/checkout", tags=["checkout"])

if __name__ == "__main__":
    uvicorn.run("retail_pos.main:app", host="0.0.0.0", port=8000, reload=True)
