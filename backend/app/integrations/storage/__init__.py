from .image_storage import upload_image

__all__ = ["upload_image"]
