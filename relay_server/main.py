"""
Spotify Collage relay. Holds the Spotify client secret, exchanges/refreshes tokens,
keeps the refresh token in an HTTP-only cookie, proxies profile and top-items calls.
Port 5000 by default.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from relay_server.config import CLIENT_URL, PORT
from relay_server.errors import RelayError
from relay_server.login import router as login_router
from relay_server.spotify_data import router as spotify_data_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Spotify Collage Relay", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.include_router(login_router, tags=["auth"])
app.include_router(spotify_data_router, tags=["spotify"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/", response_class=PlainTextResponse)
def index():
    return "Spotify Collage Generator Backend is running!"


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "relay_server"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "relay_server.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=True,
    )
