# 📄 File: app/api/v1/health.py
# 🧭 Purpose (Layman Explanation): 
# This file provides health check endpoints that tell us if the KrishiVedha API is working properly,
# like a doctor's checkup for our system.
# 🧪 Purpose (Technical Summary): 
# Liveness endpoint for load balancers plus an IP-restricted detailed view of the admission
# pipeline configuration (rate limit tiers and backend, retry policies) and the document store status.
# 🔗 Dependencies: 
# FastAPI, app.shared.config.settings, app.shared.core.dependencies
# 🔄 Connected Modules / Calls From: 
# app.api.v1.router, app.main.py, monitoring systems, load balancers

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from app.shared.core.dependencies import get_document_store, get_pipeline, require_allowed_ip
from app.shared.core.retry import RETRY_POLICIES

# Create router for health endpoints
health_router = APIRouter()

# Application start time for uptime calculation
_app_start_time = datetime.now(timezone.utc)


@health_router.get("/health",
                  summary="Basic Health Check",
                  description="Basic health check endpoint for load balancers and monitoring")
async def health_check(request: Request) -> Dict[str, Any]:
    """
    Basic health check endpoint
    
    Returns simple OK status for quick health verification.
    """
    settings = get_pipeline(request).settings
    return {
        "success": True,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "krishivedha-api",
        "version": settings.APP_VERSION,
    }


@health_router.get("/health/detailed",
                  summary="Detailed Health Check",
                  description="Admission pipeline configuration, restricted to allow-listed addresses")
async def detailed_health_check(
    request: Request,
    client_ip: str = Depends(require_allowed_ip),
) -> Dict[str, Any]:
    pipeline = get_pipeline(request)
    settings = pipeline.settings
    database = await get_document_store(request).health_check()
    now = datetime.now(timezone.utc)

    return {
        "success": True,
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "timestamp": now.isoformat(),
        "uptime_seconds": round((now - _app_start_time).total_seconds(), 1),
        "environment": settings.ENVIRONMENT,
        "database": database,
        "rate_limiting": {
            "enabled": settings.RATE_LIMIT_ENABLED,
            "backend": settings.RATE_LIMIT_BACKEND,
            "tiers": {name: limiter.tier.to_dict() for name, limiter in pipeline.limiters.items()},
        },
        "retry_policies": {
            name: asdict(pipeline.orchestrator.policy_for(name)) for name in RETRY_POLICIES
        },
        "client_ip": client_ip,
    }
