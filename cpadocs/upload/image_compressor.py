import io

from PIL import Image, UnidentifiedImageError

from cpadocs.logging.logger import Log
from cpadocs.upload.models import UploadFile

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


class ImageCompressor:
    """Down-samples large images, keeping their MIME type.

    Files that are not images, are under the threshold, or cannot be decoded
    are returned unchanged.
    """

    def __init__(
        self,
        threshold_bytes: int = 2 * 1024 * 1024,
        max_dimension: int = 1920,
        quality: int = 80,
    ) -> None:
        self._threshold_bytes = threshold_bytes
        self._max_dimension = max_dimension
        self._quality = quality

    def compress(self, file: UploadFile) -> UploadFile:
        pil_format = _PIL_FORMATS.get(file.mime_type)
        if pil_format is None or file.size <= self._threshold_bytes:
            return file

        try:
            content = self._resample(file.content, pil_format)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            Log.warning(f"Could not compress {file.filename}, uploading original: {exc}")
            return file

        Log.info(f"Compressed {file.filename} from {file.size} to {len(content)} bytes")
        return UploadFile(filename=file.filename, content=content, mime_type=file.mime_type)

    def _resample(self, content: bytes, pil_format: str) -> bytes:
        with Image.open(io.BytesIO(content)) as image:
            image.load()
            # thumbnail never enlarges and keeps the aspect ratio
            image.thumbnail((self._max_dimension, self._max_dimension))
            if pil_format == "JPEG" and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            buffer = io.BytesIO()
            if pil_format == "PNG":
                image.save(buffer, format=pil_format, optimize=True)
            else:
                image.save(buffer, format=pil_format, quality=self._quality)
            return buffer.getvalue()
