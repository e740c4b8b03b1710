import logging

from fastapi import FastAPI, Depends, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from . import places
from .auth import get_caller
from .config import settings
from .db import create_tables, get_session
from .errors import install_error_handlers
from .events import router as events_router
from .moderation import router as moderation_router
from .schemas import GeocodeRequest, PlacesSearch
from .spot_collections import router as collections_router
from .spots import router as spots_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="SpotMap API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

app.include_router(spots_router)
app.include_router(events_router)
app.include_router(collections_router)
app.include_router(moderation_router)

@app.on_event("startup")
async def startup():
    await create_tables()
    logger.info("SpotMap API started (%s)", settings.ENVIRONMENT)

@app.get("/health")
async def health(session=Depends(get_session)):
    await session.execute(text("SELECT 1"))
    return {"status": "ok", "database": "connected"}

# ---------- Places & geocoding (proxied to the provider) ----------
@app.post("/places/search")
async def places_search(payload: PlacesSearch):
    return await places.search_places(payload)

@app.get("/places/photo/{reference:path}")
async def places_photo(
    reference: str,
    w: int = Query(400, ge=1, le=4800),
    h: int = Query(400, ge=1, le=4800),
):
    content, content_type = await places.fetch_photo(reference, max_width=w, max_height=h)
    return Response(content=content, media_type=content_type, headers={"Cache-Control": "public, max-age=86400"})

@app.post("/geocode")
async def geocode(payload: GeocodeRequest, caller=Depends(get_caller)):
    return {"results": await places.geocode_address(payload.address)}

@app.get("/geocode")
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    caller=Depends(get_caller),
):
    return {"results": await places.reverse_geocode(lat, lng)}
