from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from chatvibe.api.routes import router
from chatvibe.api.chat_routes import router as chat_router
from chatvibe.core.runtime import close_runtimes
from chatvibe.observability.logging import log
from chatvibe.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # per-device HTTP clients hold pooled connections and cookies
    await close_runtimes()


app = FastAPI(title="ChatVibe Companion API", lifespan=lifespan)

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(chat_router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "ChatVibe companion API is running. Start with GET /auth/state.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


# Errors are recovered at the state-machine boundary; anything that still
# escapes is logged and answered with a stable JSON body.
@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(
        event="unhandled_exception",
        path=request.url.path,
        errorType=type(exc).__name__,
        error=str(exc)[:500],
    )
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": "Something went wrong. Please try again."},
    )
