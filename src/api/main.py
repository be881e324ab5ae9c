from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.meetings import router as meetings_router
from src.logging_config import configure_logging

configure_logging()

app = FastAPI(
    title="Meeting Transcriber API",
    description="Chunked speech-to-text transcription of meeting recordings",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(meetings_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
