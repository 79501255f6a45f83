"""
Common FastAPI dependencies for the KrishiVedha API.
Runs the admission pipeline (sanitize, rate limit, authenticate, validate,
authorize ownership) in front of route handlers.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Type

from fastapi import Request, Response
from pydantic import BaseModel

from ..config.settings import Settings
from ..utils.logging import bind_user, get_logger
from .authorization import OwnershipAuthorizer, ResourceReference
from .error_classifier import ErrorClassifier
from .exceptions import AuthorizationError, ValidationError
from .rate_limiter import RateLimitDecision, RateLimiter
from .retry import RetryOrchestrator
from .sanitizer import sanitize
from .security import Authenticator, Principal, extract_bearer_token
from .validation import RequestValidator, coerce_query_params, validate_object_id

logger = get_logger(__name__)

AUTH_REQUIRED = "required"
AUTH_OPTIONAL = "optional"
AUTH_NONE = "none"

GENERAL_TIER = "general"


@dataclass
class RequestContext:
    """What the admission pipeline hands to a route handler."""
    principal: Optional[Principal] = None
    body: Optional[BaseModel] = None
    query: Optional[BaseModel] = None
    resource: Optional[Dict[str, Any]] = None
    client_ip: str = "unknown"
    decisions: List[RateLimitDecision] = field(default_factory=list)
    _limiters: Dict[str, RateLimiter] = field(default_factory=dict, repr=False)

    @property
    def user_id(self) -> Optional[str]:
        return self.principal.id if self.principal else None

    async def report_success(self) -> None:
        """Refund the request on tiers that do not count successful attempts."""
        for decision in self.decisions:
            limiter = self._limiters.get(decision.tier)
            if limiter is not None:
                await limiter.refund(decision)


@dataclass
class AdmissionPipeline:
    """Shared pipeline components, created once per application."""
    settings: Settings
    authenticator: Authenticator
    authorizer: OwnershipAuthorizer
    limiters: Dict[str, RateLimiter]
    validator: RequestValidator
    classifier: ErrorClassifier
    orchestrator: RetryOrchestrator

    async def admit(
        self,
        request: Request,
        response: Response,
        tiers: Sequence[str] = (),
        auth: str = AUTH_REQUIRED,
        body: Optional[Type[BaseModel]] = None,
        query: Optional[Type[BaseModel]] = None,
        owns: Optional[str] = None,
        id_param: str = "id",
    ) -> RequestContext:
        client_ip = get_client_ip(request, self.settings.TRUST_FORWARDED_FOR)
        context = RequestContext(client_ip=client_ip, _limiters=self.limiters)

        raw_body = None
        body_error: Optional[ValidationError] = None
        if body is not None:
            try:
                raw_body = sanitize(await read_json_body(request))
            except ValidationError as exc:
                body_error = exc
        raw_query = sanitize(dict(request.query_params))

        # A malformed body still counts against the limits
        await self._rate_limit(request, response, context, tiers)
        if body_error is not None:
            raise body_error

        token = extract_bearer_token(request.headers.get("Authorization"))
        if auth == AUTH_REQUIRED:
            context.principal = await self.authenticator.authenticate(
                token, ip_address=client_ip, path=request.url.path
            )
        elif auth == AUTH_OPTIONAL:
            context.principal = await self.authenticator.authenticate_optional(token)
        if context.principal is not None:
            bind_user(context.principal.id)

        resource_id = request.path_params.get(id_param)
        if resource_id is not None:
            validate_object_id(resource_id, id_param)
        if body is not None:
            context.body = self.validator.validate(body, raw_body, "body")
        if query is not None:
            context.query = self.validator.validate(query, coerce_query_params(raw_query), "query")

        if owns is not None:
            context.resource = dict(await self.authorizer.authorize(
                context.principal, ResourceReference(type=owns, id=resource_id)
            ))

        return context

    async def _rate_limit(
        self,
        request: Request,
        response: Response,
        context: RequestContext,
        tiers: Sequence[str],
    ) -> None:
        if not self.settings.RATE_LIMIT_ENABLED:
            return

        names = [GENERAL_TIER] + [name for name in tiers if name != GENERAL_TIER]
        for name in names:
            limiter = self.limiters[name]
            key = limiter.tier.key_fn(request) if limiter.tier.key_fn else context.client_ip
            context.decisions.append(await limiter.acquire(key, path=request.url.path))

        tightest = min(context.decisions, key=lambda decision: decision.remaining)
        request.state.rate_limit = tightest
        response.headers.update(tightest.headers())


def get_pipeline(request: Request) -> AdmissionPipeline:
    return request.app.state.pipeline


def get_document_store(request: Request) -> Any:
    return request.app.state.document_store


def get_image_storage(request: Request) -> Any:
    return request.app.state.image_storage


def admit(
    *tiers: str,
    auth: str = AUTH_REQUIRED,
    body: Optional[Type[BaseModel]] = None,
    query: Optional[Type[BaseModel]] = None,
    owns: Optional[str] = None,
    id_param: str = "id",
):
    """
    Build a route dependency running the admission pipeline.

    Args:
        tiers: Rate limit tiers on top of "general"
        auth: "required", "optional" or "none"
        body: Schema for the JSON body
        query: Schema for the query string
        owns: Resource type the ``id_param`` path parameter must be owned by
        id_param: Name of the path parameter holding the resource id
    """
    if auth not in (AUTH_REQUIRED, AUTH_OPTIONAL, AUTH_NONE):
        raise ValueError(f"Unknown authentication mode: {auth}")
    if owns is not None and auth != AUTH_REQUIRED:
        raise ValueError("Ownership checks need required authentication")

    async def admission(request: Request, response: Response) -> RequestContext:
        return await get_pipeline(request).admit(
            request,
            response,
            tiers=tiers,
            auth=auth,
            body=body,
            query=query,
            owns=owns,
            id_param=id_param,
        )

    return admission


async def read_json_body(request: Request) -> Any:
    """Parsed JSON body; an empty body reads as an empty object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError(
            "Request body is not valid JSON",
            errors=[{"field": "body", "message": "Malformed JSON", "value": None}],
            source="body",
        )


def get_client_ip(request: Request, trust_forwarded_for: bool = False) -> str:
    """
    Get client IP address from request.

    Forwarding headers are only honoured behind a trusted reverse proxy.
    """
    if trust_forwarded_for:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return request.client.host if request.client else "unknown"


async def require_allowed_ip(request: Request) -> str:
    """Reject clients outside the configured allow-list. An empty list allows everyone."""
    settings = get_pipeline(request).settings
    client_ip = get_client_ip(request, settings.TRUST_FORWARDED_FOR)
    allowlist = settings.ip_allowlist
    if allowlist and client_ip not in allowlist:
        logger.warning("Blocked request from unlisted IP", ip=client_ip, path=request.url.path)
        raise AuthorizationError("Access denied from this IP address", details={"ip": client_ip})
    return client_ip
