import io
import logging
import os
import uuid
from typing import NamedTuple

from PIL import Image, UnidentifiedImageError

from Models.itemImageModel import ItemImage
from Utils.appError import RequestValidationError, StorageError

logger = logging.getLogger(__name__)


class StoredImage(NamedTuple):
    url: str
    reference_id: str


def normalize_image(data: bytes, max_width=1400, quality=85):
    """Re-encode an upload as RGB JPEG, scaling it down to ``max_width``."""
    try:
        img = Image.open(io.BytesIO(data))
        img = img.convert("RGB")
    except Image.DecompressionBombError:
        raise RequestValidationError("Uploaded image is too large to process")
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError):
        # Truncated or corrupt files surface as any of these while decoding
        raise RequestValidationError("Uploaded file is not a readable image")

    w, h = img.size
    if w > max_width:
        img = img.resize((max_width, int(h * (max_width / w))), Image.LANCZOS)

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality, optimize=True)
    buffer.seek(0)
    return buffer


class GridFsImageStore:
    """Keeps item photos in MongoDB GridFS, served back under /uploads/<filename>."""

    def __init__(self, max_width=1400, url_prefix="/uploads"):
        self.max_width = max_width
        self.url_prefix = url_prefix

    def prepare(self, data: bytes):
        """Decode and re-encode an upload. Raises RequestValidationError for unusable files."""
        return normalize_image(data, max_width=self.max_width)

    def store(self, prepared, original_name: str = "photo") -> StoredImage:
        base = os.path.splitext(os.path.basename(original_name or "photo"))[0] or "photo"
        filename = f"{base}_{uuid.uuid4().hex[:12]}.jpg"

        try:
            img_doc = ItemImage(filename=filename, content_type="image/jpeg", size=prepared.getbuffer().nbytes)
            img_doc.file.put(prepared, content_type="image/jpeg", filename=filename)
            img_doc.save()
        except Exception as e:
            logger.error(f"Error storing image {filename}: {str(e)}")
            raise StorageError("Could not store the photo. The item was not created.")

        logger.info(f"✅ Stored image: {filename}")
        return StoredImage(url=f"{self.url_prefix}/{filename}", reference_id=str(img_doc.id))

    def load(self, filename):
        img_doc = ItemImage.objects(filename=filename).first()
        if not img_doc:
            return None
        return img_doc.file.read(), img_doc.content_type or "image/jpeg"
