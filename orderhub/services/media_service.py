"""
Media Service

Attaches uploaded files to an order product or to the order's sample.
A batch is processed file by file: an oversized file or a blob-store
failure is reported for that file and the rest of the batch continues.
"""
import mimetypes
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from orderhub.core.permissions import Actor, ensure_can_view
from orderhub.core.settings import settings
from orderhub.core.status_config import MediaKind
from orderhub.db.unit_of_work import unit_of_work
from orderhub.exceptions import NotFoundError, UpstreamFailure, ValidationError
from orderhub.integrations.blob_store import BlobStore, BlobStoreError
from orderhub.logging_config import get_logger
from orderhub.models.order import Order, OrderProduct
from orderhub.models.order_media import OrderMedia
from orderhub.services.audit_service import record_audit

logger = get_logger(__name__)


@dataclass
class MediaUpload:
    filename: str
    content: bytes
    content_type: Optional[str] = None


@dataclass
class MediaBatchResult:
    uploaded: List[OrderMedia] = field(default_factory=list)
    failed: List[UpstreamFailure] = field(default_factory=list)


def media_kind(content_type: Optional[str], filename: str) -> MediaKind:
    mime = content_type or mimetypes.guess_type(filename)[0] or ""
    if mime.startswith("image/"):
        return MediaKind.IMAGE
    if mime.startswith("video/"):
        return MediaKind.VIDEO
    return MediaKind.DOCUMENT


def attach_media(
    db: Session,
    actor: Actor,
    store: BlobStore,
    order_id: int,
    files: List[MediaUpload],
    order_product_id: Optional[int] = None,
    is_sample: bool = False,
) -> MediaBatchResult:
    """
    Upload a batch of files and record them.

    Args:
        db: Database session
        actor: Uploader (must be able to see the order)
        store: Blob store receiving the bytes
        order_id: Order the media belongs to
        files: Files to upload
        order_product_id: Product the media belongs to (product media)
        is_sample: True for the order-level sample's media

    Returns:
        MediaBatchResult with the stored rows and one UpstreamFailure per
        rejected file
    """
    if is_sample == (order_product_id is not None):
        raise ValidationError(
            "Media belongs either to one order product or to the order's sample",
            field="order_product_id",
        )

    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    ensure_can_view(actor, order)

    if order_product_id is not None:
        product = db.get(OrderProduct, order_product_id)
        if product is None or product.order_id != order.id:
            raise NotFoundError("Order product", order_product_id)

    max_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    result = MediaBatchResult()

    with unit_of_work(db):
        for upload in files:
            if len(upload.content) > max_bytes:
                failure = UpstreamFailure(
                    upload.filename, f"File exceeds the {settings.MAX_FILE_SIZE_MB} MB limit"
                )
                logger.warning(f"Rejected upload for order {order.order_number}: {failure.message}")
                result.failed.append(failure)
                continue
            try:
                url = store.upload(upload.filename, upload.content, upload.content_type)
            except BlobStoreError as e:
                failure = UpstreamFailure(upload.filename, str(e))
                logger.warning(f"Upload failed for order {order.order_number}: {failure.message}")
                result.failed.append(failure)
                continue

            media = OrderMedia(
                order_id=order.id,
                order_product_id=order_product_id,
                is_sample=is_sample,
                kind=media_kind(upload.content_type, upload.filename).value,
                file_url=url,
                original_filename=upload.filename,
                content_type=upload.content_type,
                size_bytes=len(upload.content),
                uploaded_by=actor.id,
            )
            db.add(media)
            result.uploaded.append(media)

        if result.uploaded:
            db.flush()
            record_audit(
                db, actor, "media_attached",
                "sample" if is_sample else "order_product",
                order.id if is_sample else order_product_id,
                new_value=", ".join(m.original_filename for m in result.uploaded),
                order_id=order.id,
            )

    logger.info(
        f"Order {order.order_number}: {len(result.uploaded)} file(s) attached, "
        f"{len(result.failed)} failed"
    )
    return result
