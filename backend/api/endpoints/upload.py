"""
File upload endpoint
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import FormData, UploadFile

from core.config import settings
from core.middleware import current_request_id
from services.upload import (
    BatchUploader,
    MetadataIndexer,
    UploadContext,
    UploadRequest,
    build_error_response,
    build_response,
)
from utils.error_handlers import AppError, RequestError, log_error
from utils.validators import validate_file_list

logger = logging.getLogger(__name__)

router = APIRouter()

FILE_FIELDS = ("file", "file[]")


def request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


async def get_upload_context(request: Request) -> UploadContext:
    """Bundle the app-wide HTTP client and KV store with this request's origin"""
    return UploadContext(
        settings=settings,
        client=request.app.state.http_client,
        origin=request_origin(request),
        kv_store=request.app.state.kv_store,
        request_id=current_request_id(),
    )


def collect_uploads(form: FormData) -> List[UploadRequest]:
    """Pick the ``file`` / ``file[]`` parts out of a parsed form, in order"""
    uploads = []
    for key, value in form.multi_items():
        if key not in FILE_FIELDS:
            continue
        if not isinstance(value, UploadFile):
            raise RequestError(
                f"Form field '{key}' is not a file",
                details={"reason": "FIELD_NOT_A_FILE"}
            )
        uploads.append(UploadRequest.from_upload_file(value))
    return uploads


@router.post("")
async def upload_files(
    request: Request,
    ctx: UploadContext = Depends(get_upload_context)
) -> JSONResponse:
    """
    Upload one or more files.

    - Accepts ``multipart/form-data`` with parts named ``file`` or ``file[]``
    - Stores each file upstream, isolating per-file failures
    - Indexes successful uploads in the KV store (best effort)
    - Returns 200 when at least one file was stored
    """
    response_format = ctx.settings.RESPONSE_FORMAT

    try:
        form = await request.form()
    except Exception as e:
        logger.error(f"Could not parse upload form: {e}")
        return build_error_response(
            RequestError("Malformed multipart body", details={"reason": str(e) or type(e).__name__}),
            response_format
        )

    try:
        try:
            uploads = collect_uploads(form)
            validate_file_list(uploads)
            ctx.ensure_configured()
        except AppError as e:
            logger.warning(f"Upload rejected: {e.message}")
            return build_error_response(e, response_format)
        except Exception as e:
            log_error(e, {"request_id": ctx.request_id, "stage": "collect"})
            return build_error_response(e, response_format)

        logger.info(f"Received {len(uploads)} file(s)")
        try:
            result = await BatchUploader(ctx).run(uploads)
        except Exception as e:
            log_error(e, {"request_id": ctx.request_id, "files": len(uploads)})
            return build_error_response(e, response_format)

        if result.successes and ctx.kv_store is not None:
            indexer = MetadataIndexer(
                ctx.kv_store,
                batch_size=ctx.settings.KV_BATCH_SIZE,
                pause=ctx.settings.KV_BATCH_PAUSE,
                sleep=ctx.sleep,
            )
            await indexer.record_all(result.successes)

        return build_response(result, response_format)
    finally:
        await form.close()
