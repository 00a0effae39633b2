# crafthub/main.py
import logging

from fastapi import FastAPI

from .catalog import admin_router, catalog_router
from .config import get_settings


settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="CraftHub",
    description=(
        "Catalog of Minecraft resource packs, mods and clients: browsing, "
        "ratings, comments and downloads, with an administration panel "
        "backed by Supabase."
    ),
    version="1.0.0",
)

app.include_router(catalog_router)
app.include_router(admin_router)


# Base route for a quick liveness check
@app.get("/")
def health_check():
    return {"status": "ok", "message": "CraftHub live"}
