from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base, SessionLocal
from .routers import projects, takeoffs, labor, estimate

logger = logging.getLogger("deckbid")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="DeckBid Estimating",
    description=f"Deck, covered deck and fence takeoff, labor and estimate engine for {settings.COMPANY_NAME}",
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
app.include_router(projects.router, prefix="/api")
app.include_router(takeoffs.router, prefix="/api")
app.include_router(labor.router, prefix="/api")
app.include_router(estimate.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "deckbid"}


@app.on_event("startup")
def auto_seed():
    """Seed the default labor templates on first run."""
    db = SessionLocal()
    try:
        added = labor.seed_labor_templates(db)
        if added:
            logger.info("Seeded %d default labor templates", added)
    finally:
        db.close()
