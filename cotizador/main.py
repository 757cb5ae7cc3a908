from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base, SessionLocal
from .routers import catalog, project_codes, quotations

logger = logging.getLogger("cotizador")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="UCMV Cotizador",
    description=f"Furniture quotation pricing and project codes for {settings.COMPANY_NAME}",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(catalog.router, prefix="/api")
app.include_router(project_codes.router, prefix="/api")
app.include_router(quotations.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "ucmv-cotizador"}


@app.on_event("startup")
def auto_seed():
    """Seed the default catalog on first run."""
    if not settings.AUTO_SEED:
        return
    db = SessionLocal()
    try:
        seeded = catalog.seed_catalog(db)
        logger.info("Catalog seed: %s", seeded)
    finally:
        db.close()
