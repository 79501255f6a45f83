# 📄 File: app/shared/infrastructure/storage/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Sets up the storage that keeps crop photos farmers upload from the app.
#
# 🧪 Purpose (Technical Summary):
# Exposes the image storage backends (local disk, in-memory for tests) used by the crop image upload endpoint.
#
# 🔗 Dependencies:
# - app/shared/infrastructure/storage/image_storage.py
#
# 🔄 Connected Modules / Calls From:
# - app.modules.crop_management.presentation.api.v1.crops (image uploads)
# - app.main (application wiring)

from .image_storage import (
    ImageStorage,
    InMemoryImageStorage,
    LocalImageStorage,
    StoredImage,
    build_image_storage,
)

__all__ = [
    "ImageStorage",
    "InMemoryImageStorage",
    "LocalImageStorage",
    "StoredImage",
    "build_image_storage",
]
