import cv2
import numpy as np
import time
import logging
from datetime import datetime
from typing import Optional
from fastapi import FastAPI, UploadFile, File, Form, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from analysis_types import FaceBox, FaceNotDetected
from analyzer import SkinToneAnalyzer
from settings import Settings, configure_logging

VERSION = "1.0"

settings = Settings.from_env()
configure_logging(settings)
logger = logging.getLogger("skin_tone_api")

app = FastAPI(
    title="Skin Tone Season API",
    description="Heuristic skin tone to color season classification",
    version=VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

analyzer = SkinToneAnalyzer()


def decode_image(contents):
    """Decode upload bytes to an RGB array; None if OpenCV cannot read them."""
    if not contents:
        return None
    nparr = np.frombuffer(contents, np.uint8)
    img = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if img is None:
        return None
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def build_face_box(x, y, width, height):
    values = (x, y, width, height)
    if all(v is None for v in values):
        return None
    if any(v is None for v in values):
        raise HTTPException(
            status_code=400,
            detail="Face box needs all of x, y, width and height."
        )
    return FaceBox(x, y, width, height)


@app.get("/")
async def root():
    return {
        "service": "Skin Tone Season API",
        "version": VERSION,
        "status": "operational",
        "endpoints": {
            "/analyze-skin-tone": "POST - Classify skin tone into a color season",
            "/health": "GET - System health check"
        }
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": VERSION,
        "timestamp": datetime.now().isoformat(),
        "components": {
            "locator": type(analyzer.locator).__name__,
            "sampler": type(analyzer.sampler).__name__,
            "engine": type(analyzer.engine).__name__
        }
    }


@app.post("/analyze-skin-tone")
async def analyze_skin_tone(
    file: UploadFile = File(...),
    x: Optional[float] = Form(None),
    y: Optional[float] = Form(None),
    width: Optional[float] = Form(None),
    height: Optional[float] = Form(None),
    normalized: bool = Form(False),
    cropped: bool = Form(False)
):
    start_time = time.time()

    try:
        contents = await file.read()
        if len(contents) > settings.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Image is larger than {settings.max_upload_bytes} bytes."
            )

        image_rgb = decode_image(contents)
        if image_rgb is None:
            raise HTTPException(
                status_code=400,
                detail="Invalid image file. Please upload a valid JPG or PNG."
            )

        box = build_face_box(x, y, width, height)
        logger.info(
            f"Analysis started - File: {file.filename}, Face box: {box}, "
            f"Normalized: {normalized}, Cropped: {cropped}"
        )

        if cropped:
            result = await run_in_threadpool(analyzer.analyze, image_rgb, None, None, True)
        elif normalized:
            result = await run_in_threadpool(analyzer.analyze, image_rgb, None, box)
        else:
            result = await run_in_threadpool(analyzer.analyze, image_rgb, box)

        processing_time = time.time() - start_time

        if isinstance(result, FaceNotDetected):
            logger.info(f"Face not detected ({result.stage}) in {processing_time:.2f}s")
            return JSONResponse(status_code=400, content=result.to_dict())

        logger.info(
            f"Analysis completed: {result.season.value} "
            f"(season confidence {result.season_confidence:.2f}, overall {result.overall_confidence:.2f}, "
            f"confirm={result.needs_confirmation}) in {processing_time:.2f}s"
        )

        response = result.to_dict()
        response["metadata"] = {
            "version": VERSION,
            "timestamp": datetime.now().isoformat(),
            "processing_time_seconds": round(processing_time, 3)
        }
        return JSONResponse(content=response)

    except HTTPException:
        raise

    except Exception as e:
        logger.error(f"Analysis error: {str(e)}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": str(e),
                "detail": "Analysis failed. Please ensure the image shows a clear front-facing face with good lighting."
            }
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
