"""
API routes for the water meter reading backend.
"""
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse

from water_meter.errors import DecodeFailure
from water_meter.ocr.processor import WaterMeterProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

VALID_EXTENSIONS = {".jpg", ".jpeg", ".png", ".heic", ".heif", ".gif", ".webp", ".bmp"}

CONFIDENCE_NOTE = (
    "confidence is a coarse heuristic bucket (0.0, 0.3, 0.7 or 0.9), "
    "not a calibrated probability"
)


def get_processor(request: Request) -> WaterMeterProcessor:
    processor = getattr(request.app.state, "processor", None)
    if processor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="OCR processor is not initialized",
        )
    return processor


def _validate_image_upload(file: UploadFile) -> None:
    """Accept by content-type first, then fall back to the file extension."""
    if file.content_type and file.content_type.startswith("image/"):
        logger.info("File validated by content-type")
        return

    if file.filename:
        file_extension = Path(file.filename).suffix.lower()
        if file_extension in VALID_EXTENSIONS:
            logger.info(f"File validated by extension: {file_extension}")
            return
        logger.error(f"Invalid file extension: {file_extension}")
    else:
        logger.error("No filename provided and content_type is invalid")

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"File must be an image. Received content_type: {file.content_type}, filename: {file.filename}",
    )


@router.post("/read-meter")
async def read_meter(
    file: UploadFile = File(...),
    detect: Optional[bool] = Form(default=None),
    processor: WaterMeterProcessor = Depends(get_processor),
):
    """
    Read the counter value from an uploaded meter photo.

    Args:
        file: Image file to read
        detect: Locate the meter window before OCR (defaults to DETECT_BEFORE_OCR)

    Returns:
        JSON response with the reading, its confidence and the diagnostic trail
    """
    logger.info("=" * 50)
    logger.info("Received read-meter request")
    logger.info(f"File filename: {file.filename}, content_type: {file.content_type}")

    _validate_image_upload(file)

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

    use_detector = processor.settings.detect_before_ocr if detect is None else detect
    logger.info(f"Starting OCR recognition ({len(content)} bytes, detect={use_detector})...")

    if use_detector:
        result = await processor.aprocess_meter_image(content)
    else:
        result = await processor.aprocess_reading(content)

    if result.has_reading:
        logger.info(f"OCR successful: reading={result.reading}, confidence={result.confidence}")
        message = "Image processed successfully"
    else:
        logger.warning(f"OCR found no reading: debug_info={result.debug_info}")
        message = "No meter reading found in image"
    logger.info("=" * 50)

    response_data = {
        "status": "success",
        "message": message,
        "filename": file.filename,
        "content_type": file.content_type,
        "file_size": len(content),
        "confidence_note": CONFIDENCE_NOTE,
    }
    response_data.update(result.to_dict())

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)


@router.post("/detect")
def detect_meter(
    file: UploadFile = File(...),
    processor: WaterMeterProcessor = Depends(get_processor),
):
    """Return the meter-window boxes left after non-maximum suppression."""
    _validate_image_upload(file)
    content = file.file.read()

    if processor.detector is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No detector configured (set YOLO_METER_MODEL_PATH)",
        )

    try:
        detection = processor.detect(content)
    except DecodeFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error detecting meter: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error detecting meter: {str(e)}",
        )

    return {"status": "success", **detection.to_dict()}
