"""FastAPI application for reviewing and executing tree merges."""

from datetime import datetime
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ... import __version__
from .merge_review import router as merge_router

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="treemerge API",
    description="Review and execute merges of genealogical family trees",
    version=__version__,
)

# Add CORS middleware to allow a review frontend to access the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(merge_router)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
