from . import messages, photos, upload

__all__ = ["messages", "photos", "upload"]
