from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from skysearch.config import settings
from skysearch.exceptions import AuthError, FlightSearchError
import logging

# Configure basic logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Flight search backed by the Amadeus Self-Service APIs",
    version="1.0.0"
)

origins = ["*"]

if settings.env == "production":
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

logger.info(f"CORS origins: {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FlightSearchError)
async def flight_search_error_handler(request: Request, exc: FlightSearchError):
    if isinstance(exc, AuthError):
        logger.error(f"Amadeus authentication error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


from skysearch.routers import airports, flight_search
app.include_router(airports.router)
app.include_router(flight_search.router)

@app.get("/health")
def health_check():
    """
    Basic health check endpoint to verify service is running.
    """
    return {"status": "ok", "environment": settings.env}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("skysearch.main:app", host="0.0.0.0", port=8000, reload=True)
