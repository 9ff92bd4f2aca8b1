from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .deps import get_settings
from .routers import health, transcripts, trials

settings = get_settings()

app = FastAPI(title="TrialScribe", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(transcripts.router, prefix="/api", tags=["transcripts"])
app.include_router(trials.router, prefix="/api", tags=["trials"])
app.include_router(health.router, prefix="/api", tags=["health"])
