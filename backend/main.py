import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from assistant import router as assistant_router
from collectors import CollectorService, build_collector_service, collector_stats
from config import ANTHROPIC_API_KEY, API_VERSION, FRONTEND_ORIGIN, SERVICE_NAME
from dependencies import (
    authenticated_uid,
    get_collector_service,
    get_http_client,
    get_image_store,
    get_vision_client,
)
from errors import RelayError, ValidationError
from firebase_adapters import (
    FirebaseImageStore,
    FirebaseTokenVerifier,
    FirestoreItemDirectory,
    ImageStore,
    init_firebase,
)
from images import DownloadedImage, fetch_image
from log import get_logger
from models import (
    ErrorResponse,
    ProcessRequest,
    ProcessResponse,
    ProcessSingleRequest,
    ProcessSingleResponse,
)
from vision_llm import VisionClient, analyze_items, analyze_single_item

log = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not ANTHROPIC_API_KEY:
        raise ValueError("ANTHROPIC_API_KEY environment variable is required")

    http_client = httpx.AsyncClient()
    firebase_app = init_firebase()
    app.state.http_client = http_client
    app.state.vision_client = VisionClient()
    app.state.collector_service = build_collector_service(http_client)
    app.state.token_verifier = FirebaseTokenVerifier(firebase_app)
    app.state.image_store = FirebaseImageStore(firebase_app)
    app.state.item_directory = FirestoreItemDirectory(firebase_app)
    log.info("%s %s ready", SERVICE_NAME, API_VERSION)
    try:
        yield
    finally:
        await app.state.vision_client.aclose()
        await http_client.aclose()


app = FastAPI(title=SERVICE_NAME, version=API_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assistant_router)


def _elapsed(started: float) -> float:
    return round(time.monotonic() - started, 3)


def error_response(started: float | None, error: str, exc: RelayError) -> JSONResponse:
    body = ErrorResponse(
        version=API_VERSION,
        error=error,
        details=exc.message if error != exc.message else None,
        processing_time=_elapsed(started) if started is not None else None,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


def check_caller(body: ProcessRequest, uid: str) -> None:
    if not body.image_url or not body.user_id:
        raise ValidationError("Missing required fields: image_url and user_id are required")
    if body.user_id != uid:
        raise ValidationError("User ID does not match authenticated user", status_code=403)


async def delete_source_image(store: ImageStore, image: DownloadedImage) -> bool:
    if not image.storage_path:
        return False
    try:
        return await store.delete(image.storage_path)
    except Exception:
        # Deleting the upload never fails the request.
        log.exception("Image cleanup failed for %s", image.storage_path)
        return False


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    return error_response(None, exc.message, exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    error = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"version": API_VERSION, "error": error})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error")
    return JSONResponse(
        status_code=500,
        content={"version": API_VERSION, "error": "Internal server error", "message": "Something went wrong"},
    )


@app.get("/")
async def root():
    return {
        "message": SERVICE_NAME,
        "version": API_VERSION,
        "endpoints": {
            "POST /assistant/webhook": "Google Assistant Actions Builder webhook",
            "POST /process": "Process image and detect all household items",
            "POST /process-single": "Process image and analyze a specific item",
            "GET /health": "Health check",
        },
    }


@app.get("/health")
async def health_check():
    return {
        "version": API_VERSION,
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
    }


@app.post("/process", response_model=ProcessResponse)
async def process(
    body: ProcessRequest,
    uid: str = Depends(authenticated_uid),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    vision: VisionClient = Depends(get_vision_client),
    collectors: CollectorService = Depends(get_collector_service),
    image_store: ImageStore = Depends(get_image_store),
):
    started = time.monotonic()
    try:
        check_caller(body, uid)
        language = body.language or "en"
        log.info("Processing image for user %s in language: %s", body.user_id, language)

        image = await fetch_image(http_client, body.image_url)
        analysis = await analyze_items(vision, image, language, body.tags)
        items = await collectors.enrich_all(analysis.items)
        image_deleted = await delete_source_image(image_store, image)

        return ProcessResponse(
            version=API_VERSION,
            items=items,
            token_usage=analysis.token_usage,
            warnings=analysis.warnings,
            processing_time=_elapsed(started),
            user_id=body.user_id,
            image_deleted=image_deleted,
            collector_stats=collector_stats(items),
        )
    except ValidationError as exc:
        return error_response(started, exc.message, exc)
    except RelayError as exc:
        log.error("Error processing image: %s", exc)
        return error_response(started, "Failed to process image", exc)
    except Exception as exc:
        log.exception("Error processing image")
        return error_response(started, "Failed to process image", RelayError(str(exc)))


@app.post("/process-single", response_model=ProcessSingleResponse)
async def process_single(
    body: ProcessSingleRequest,
    uid: str = Depends(authenticated_uid),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    vision: VisionClient = Depends(get_vision_client),
    collectors: CollectorService = Depends(get_collector_service),
    image_store: ImageStore = Depends(get_image_store),
):
    started = time.monotonic()
    try:
        check_caller(body, uid)
        language = body.language or "en"
        if body.item_name:
            log.info('Processing single item "%s" for user %s in language: %s', body.item_name, body.user_id, language)
        else:
            log.info("Processing most prominent item for user %s in language: %s", body.user_id, language)

        image = await fetch_image(http_client, body.image_url)
        analysis = await analyze_single_item(vision, image, body.item_name, language, body.tags)
        item = await collectors.enrich_item(analysis.item)
        image_deleted = await delete_source_image(image_store, image)

        response = ProcessSingleResponse(
            version=API_VERSION,
            item=item,
            token_usage=analysis.token_usage,
            warnings=analysis.warnings,
            processing_time=_elapsed(started),
            user_id=body.user_id,
            image_deleted=image_deleted,
            searched_for=body.item_name or None,
        )
        # searched_for only appears when the caller named an item.
        return JSONResponse(response.model_dump(exclude={"searched_for"} if not body.item_name else None))
    except ValidationError as exc:
        return error_response(started, exc.message, exc)
    except RelayError as exc:
        log.error("Error processing single item: %s", exc)
        return error_response(started, "Failed to process single item", exc)
    except Exception as exc:
        log.exception("Error processing single item")
        return error_response(started, "Failed to process single item", RelayError(str(exc)))
