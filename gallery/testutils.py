"""
Shared helpers for the gallery test modules.
"""

from io import BytesIO

from PIL import Image

from gallery.exceptions import BlobStoreError
from gallery.storage import BlobStore, StoredBlob, build_object_key


class InMemoryBlobStore(BlobStore):
    """Blob store that keeps uploads in a dict; set `fail=True` to refuse them."""

    def __init__(self, fail=False):
        self.fail = fail
        self.objects = {}

    def store(self, data, kind_hint, filename):
        if self.fail:
            raise BlobStoreError(f"refusing {filename}")
        key = build_object_key(kind_hint, filename)
        self.objects[key] = data
        thumbnail_url = None
        if kind_hint == "gif":
            thumbnail_url = f"https://cdn.example.com/{key}.thumb.jpg"
        return StoredBlob(
            url=f"https://cdn.example.com/{key}", key=key, thumbnail_url=thumbnail_url
        )


def make_image_bytes(size=(64, 48), color=(200, 80, 40), fmt="JPEG", exif=None) -> bytes:
    buffer = BytesIO()
    img = Image.new("RGB", size, color)
    if exif is not None:
        img.save(buffer, format=fmt, exif=exif)
    else:
        img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_gif_bytes(size=(32, 32), frames=2) -> bytes:
    buffer = BytesIO()
    images = [Image.new("RGB", size, (i * 60 % 256, 20, 120)) for i in range(frames)]
    images[0].save(
        buffer, format="GIF", save_all=True, append_images=images[1:], duration=100, loop=0
    )
    return buffer.getvalue()
