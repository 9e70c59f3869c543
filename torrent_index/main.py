from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from torrent_index.core import db, settings
from torrent_index.core.errors import QueryError, TransientDBError
from torrent_index.search import router as search_router
from torrent_index.stats import router as stats_router
from torrent_index.torrents import router as torrents_router

settings.configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Open the database (pool + schema setup) once per process.
    app.state.database = await db.open_database(settings.database_url())
    try:
        yield
    finally:
        await db.close_database(app.state.database)
        app.state.database = None


app = FastAPI(lifespan=lifespan)

# Browser frontends listed in TORRENT_INDEX_CORS_ORIGINS may call this API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(QueryError)
async def query_error_handler(_: Request, exc: QueryError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(TransientDBError)
async def transient_error_handler(_: Request, exc: TransientDBError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


app.include_router(search_router.router, tags=["search"])
app.include_router(torrents_router.router, tags=["torrents"])
app.include_router(stats_router.router, tags=["statistics"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
