# 📄 File: app/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# The main entry point that tells Python this 'app' folder contains the KrishiVedha backend code
# and sets up the basic version and package information.
#
# 🧪 Purpose (Technical Summary):
# Application package initialization with version info and package metadata
# for the KrishiVedha FastAPI application.
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - main.py (application entry point)
# - Package imports throughout the application

"""
KrishiVedha API - Farm Management Backend

Backend API for the KrishiVedha farming app: farms, crops and the farmer
community, guarded by a rate limiting, authentication and ownership pipeline.
"""

__version__ = "1.0.0"
__title__ = "KrishiVedha API"
__description__ = "Farm, crop and community backend for the KrishiVedha app"
__license__ = "MIT"

__all__ = [
    "__version__",
    "__title__",
    "__description__",
    "__license__",
]
