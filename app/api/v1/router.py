# 📄 File: app/api/v1/router.py
# 🧭 Purpose (Layman Explanation): 
# This file acts like a traffic director for all API version 1 requests, sending login requests to the
# account handlers, farm requests to the farm handlers and so on.
# 🧪 Purpose (Technical Summary): 
# Main API v1 router aggregation that combines all module routers and configures route prefixes
# for the FastAPI application.
# 🔗 Dependencies: 
# FastAPI, app.modules.*.presentation.api.v1.*
# 🔄 Connected Modules / Calls From: 
# app.main.py

from typing import Any, Dict

from fastapi import APIRouter

from app.modules.community.presentation.api.v1.posts import posts_router
from app.modules.crop_management.presentation.api.v1.crops import crops_router
from app.modules.farm_management.presentation.api.v1.farms import farms_router
from app.modules.user_management.presentation.api.v1.auth import auth_router
from app.shared.utils.logging import get_logger

from . import COMMON_RESPONSES, ROUTE_PREFIXES, get_api_info

logger = get_logger(__name__)

# Create main API v1 router
api_v1_router = APIRouter(responses=COMMON_RESPONSES)


@api_v1_router.get("/",
                  summary="API v1 Information",
                  description="Get API v1 version information and available endpoints",
                  tags=["API Info"])
async def api_v1_info() -> Dict[str, Any]:
    return {"success": True, **get_api_info()}


# =========================================================================
# MODULE ROUTER INCLUDES
# =========================================================================

for router, prefix, tag in [
    (auth_router, ROUTE_PREFIXES["auth"], "Authentication"),
    (farms_router, ROUTE_PREFIXES["farms"], "Farms"),
    (crops_router, ROUTE_PREFIXES["crops"], "Crops"),
    (posts_router, ROUTE_PREFIXES["community"], "Community"),
]:
    api_v1_router.include_router(router, prefix=prefix, tags=[tag])
    logger.debug(f"{tag} router loaded", prefix=prefix)
