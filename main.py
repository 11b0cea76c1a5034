"""
Metadata Removal API: strips EXIF/ICC/XMP from images and returns a clean JPEG.
"""
import logging, traceback
from datetime import datetime, timezone
from typing import Optional
from fastapi import Body, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from scrubber import settings
from scrubber.acquirer import ImagePayload, fetch_remote_image, read_upload, too_large_message
from scrubber.errors import FileTooLargeError, InvalidRequestError, MetadataRemovalError
from scrubber.inspector import inspect_metadata
from scrubber.stripper import transcode_to_jpeg

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("metadata-remover")

UPLOAD_PATHS = ("/remove-metadata", "/inspect-metadata")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


class ImageUrlRequest(BaseModel):
    imageUrl: Optional[str] = None


app = FastAPI(title="Metadata Removal API", version=settings.VERSION)


class _BodyTooLarge(Exception):
    pass


class UploadSizeLimitMiddleware:
    """
    Caps request bodies on the upload routes at MAX_UPLOAD_BYTES plus multipart overhead.

    A declared Content-Length over the cap is refused before the app runs. Bodies without
    one (chunked) are counted as they stream in and cut off at the cap, so the multipart
    parser never spools more than that. read_upload still checks the file part itself.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] not in UPLOAD_PATHS:
            await self.app(scope, receive, send)
            return

        limit = settings.MAX_UPLOAD_BYTES + settings.MULTIPART_OVERHEAD_BYTES
        declared = Headers(scope=scope).get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            logger.warning(f"Rejected {scope['path']}: Content-Length {declared} over limit")
            await self._reject(scope, receive, send)
            return

        received = 0
        exceeded = False

        async def counting_receive():
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    exceeded = True
                    raise _BodyTooLarge()
            return message

        async def guarded_send(message):
            # Whatever the app answers to a cut-off body is replaced below.
            if not exceeded:
                await send(message)

        try:
            await self.app(scope, counting_receive, guarded_send)
        except Exception:
            if not exceeded:
                raise
        if exceeded:
            logger.warning(f"Rejected {scope['path']}: streamed body passed {limit} bytes")
            await self._reject(scope, receive, send)

    async def _reject(self, scope, receive, send):
        err = FileTooLargeError(too_large_message())
        response = JSONResponse(err.to_dict(), status_code=err.status_code)
        await response(scope, receive, send)


app.add_middleware(UploadSizeLimitMiddleware)


@app.middleware("http")
async def catch_unhandled_errors(request: Request, call_next):
    # Sits inside CORS and add_security_headers, so ServerError bodies get their headers too.
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled error on {request.method} {request.url.path}:\n{traceback.format_exc()}")
        err = MetadataRemovalError(str(exc))
        return JSONResponse(err.to_dict(), status_code=err.status_code)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Length"],
)


@app.exception_handler(MetadataRemovalError)
async def handle_metadata_error(request: Request, exc: MetadataRemovalError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.kind}): {exc.message}\n{traceback.format_exc()}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.kind}): {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    details = "; ".join(str(e.get("msg", e)) for e in exc.errors()) or "Malformed request"
    err = InvalidRequestError(details)
    logger.info(f"{request.method} {request.url.path} rejected (InvalidRequest): {details}")
    return JSONResponse(err.to_dict(), status_code=err.status_code)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    # Last resort for failures in the middleware stack itself.
    logger.error(f"Unhandled error on {request.method} {request.url.path}:\n{traceback.format_exc()}")
    err = MetadataRemovalError(str(exc))
    return JSONResponse(err.to_dict(), status_code=err.status_code, headers=SECURITY_HEADERS)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _jpeg_response(jpeg_bytes: bytes) -> Response:
    return Response(
        content=jpeg_bytes,
        media_type="image/jpeg",
        headers={"Content-Disposition": f'attachment; filename="{settings.OUTPUT_FILENAME}"'},
    )


async def _clean(payload: ImagePayload) -> Response:
    jpeg_bytes = await run_in_threadpool(transcode_to_jpeg, payload.data)
    logger.info(f"Cleaned {payload.source} image: {payload.size} -> {len(jpeg_bytes)} bytes")
    return _jpeg_response(jpeg_bytes)


@app.get("/")
async def home():
    return {
        "status": "success",
        "message": "Metadata Removal API is running",
        "version": settings.VERSION,
        "endpoints": {
            "POST /remove-metadata": "Remove metadata from uploaded image",
            "POST /remove-metadata-url": "Remove metadata from image URL",
            "POST /inspect-metadata": "List metadata found in uploaded image",
            "GET /health": "Health check",
        },
    }


@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": _now_iso()}


@app.post("/remove-metadata")
async def remove_metadata(image: Optional[UploadFile] = File(None)):
    payload = await read_upload(image)
    return await _clean(payload)


@app.post("/remove-metadata-url")
async def remove_metadata_url(body: Optional[ImageUrlRequest] = Body(None)):
    payload = await run_in_threadpool(fetch_remote_image, body.imageUrl if body else None)
    return await _clean(payload)


@app.post("/inspect-metadata")
async def inspect(image: Optional[UploadFile] = File(None)):
    payload = await read_upload(image)
    report = await run_in_threadpool(inspect_metadata, payload.data)
    return JSONResponse(report)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Metadata Removal API running on port {settings.PORT}")
    logger.info(f"Health check: http://localhost:{settings.PORT}/health")
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT)
