"""
Main entry point for the water meter reading backend server.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from water_meter import __version__
from water_meter.api import routes
from water_meter.config import Settings
from water_meter.ocr.engines import make_recognizer
from water_meter.ocr.processor import WaterMeterProcessor

settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests."""
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        logger.info(f"→ {request.method} {request.url.path}")
        if request.url.query:
            logger.info(f"  Query params: {request.url.query}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(f"← {request.method} {request.url.path} - Status: {response.status_code} - Time: {process_time:.3f}s")

        return response


def build_processor(settings: Settings) -> WaterMeterProcessor:
    """Open the OCR engine (and the detector, when a model is configured) once per process."""
    recognizer = make_recognizer(settings=settings)

    detector = None
    if settings.yolo_model_path or settings.detect_before_ocr:
        try:
            from water_meter.detection.detector import YoloDetector
            detector = YoloDetector(settings.yolo_model_path, confidence_threshold=settings.detection_confidence)
        except Exception as e:
            logger.warning(f"Could not load YOLO detector: {e}. Reading whole images only.")

    return WaterMeterProcessor(recognizer, detector=detector, settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Water meter API server starting up...")
    app.state.processor = build_processor(settings)
    yield
    close = getattr(app.state.processor.recognizer, "close", None)
    if close is not None:
        close()
    logger.info("Water meter API server shutting down...")


app = FastAPI(
    title="Water Meter OCR API",
    version=__version__,
    description="Backend API for water meter reading with OCR",
    lifespan=lifespan,
)

# Add logging middleware (before CORS)
app.add_middleware(LoggingMiddleware)

# Configure CORS for mobile app communication
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "message": "Water meter OCR API is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
