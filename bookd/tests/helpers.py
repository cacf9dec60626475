import io

from PIL import Image


def image_bytes(width=120, height=120, fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(120, 35, 225)).save(buffer, format=fmt)
    return buffer.getvalue()
