# 📄 File: app/shared/config/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Contains the settings that tell the KrishiVedha app how strict its limits are,
# how it signs login tokens and how it writes its logs.
#
# 🧪 Purpose (Technical Summary):
# Configuration package initialization exporting the pydantic-settings Settings
# class and its cached accessor.
#
# 🔗 Dependencies:
# - settings.py (application settings)
#
# 🔄 Connected Modules / Calls From:
# - app.main (application startup)
# - All modules requiring configuration

from .settings import get_settings, Settings

__all__ = [
    "get_settings",
    "Settings",
]
