"""
Request payload validation.

Validates a whole payload against a pydantic model in one pass, collecting
every violation, and drops fields the model does not declare. Path
identifiers are checked separately as 24-hex-character object ids.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..utils.logging import get_logger
from .exceptions import ValidationError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

MAX_UPLOAD_SIZE = 10 * 1024 * 1024
ALLOWED_UPLOAD_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
MAX_UPLOAD_FILES = 5

NUMERIC_QUERY_HINTS = ("limit", "page", "size")


def format_errors(errors: Iterable[Mapping[str, Any]], source: str = "body") -> List[Dict[str, Any]]:
    """
    Convert pydantic error entries to ``{field, message, value}``.

    Nested locations are joined with dots; a missing field reports no value.
    """
    formatted = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        value = None if error.get("type") == "missing" else error.get("input")
        formatted.append({
            "field": ".".join(location) or source,
            "message": message,
            "value": value,
        })
    return formatted


class RequestValidator:
    """Validates request data against route schemas."""

    def validate(self, schema: Type[ModelT], data: Any, source: str = "body") -> ModelT:
        """
        Validate ``data`` against ``schema``.

        Args:
            schema: Pydantic model describing the payload
            data: Raw payload
            source: Where the data came from (body, query, path)

        Returns:
            The validated model instance; undeclared fields are dropped

        Raises:
            ValidationError: With one entry per violation
        """
        try:
            return schema.model_validate(data if data is not None else {})
        except PydanticValidationError as exc:
            errors = format_errors(exc.errors(), source)
            logger.warning(
                "Validation failed",
                source=source,
                schema=schema.__name__,
                fields=[error["field"] for error in errors],
            )
            raise ValidationError("Validation failed", errors=errors, source=source)


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


def validate_object_id(value: Any, param: str = "id") -> str:
    """Return ``value`` if it is a well-formed object id, else raise."""
    if not is_object_id(value):
        logger.warning("Invalid ObjectId", param=param, value=value)
        raise ValidationError(
            f"Invalid {param} format",
            errors=[{"field": param, "message": f"Invalid {param} format", "value": value}],
            source="path",
        )
    return value


def coerce_query_params(query: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Coerce query string values.

    ``"true"``/``"false"`` become booleans; integer-looking values of keys
    containing limit, page or size become ints.
    """
    coerced: Dict[str, Any] = {}
    for key, value in query.items():
        if value == "true":
            value = True
        elif value == "false":
            value = False
        elif isinstance(value, str) and any(hint in key.lower() for hint in NUMERIC_QUERY_HINTS):
            try:
                value = int(value)
            except ValueError:
                pass
        coerced[key] = value
    return coerced


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: Optional[str]
    size: int


async def read_upload(upload: Any, max_size: int = MAX_UPLOAD_SIZE) -> Tuple[UploadedFile, bytes]:
    """
    Describe an uploaded file and read its content.

    At most ``max_size + 1`` bytes are read. A file whose declared size is
    already over the limit is not read at all and comes back with empty
    content; ``validate_uploads`` rejects both cases.
    """
    filename = upload.filename or ""
    declared = getattr(upload, "size", None)
    if declared is not None and declared > max_size:
        return UploadedFile(filename=filename, content_type=upload.content_type, size=declared), b""

    content = await upload.read(max_size + 1)
    return UploadedFile(filename=filename, content_type=upload.content_type, size=len(content)), content


def validate_uploads(
    files: Sequence[UploadedFile],
    max_size: int = MAX_UPLOAD_SIZE,
    allowed_types: Sequence[str] = ALLOWED_UPLOAD_TYPES,
    max_files: int = MAX_UPLOAD_FILES,
) -> None:
    """
    Check count, size and content type of uploaded files.

    Raises:
        ValidationError: With one entry per problem
    """
    errors: List[Dict[str, Any]] = []

    if not files:
        errors.append({"field": "files", "message": "At least one file is required", "value": None})
    if len(files) > max_files:
        errors.append({"field": "files", "message": f"Maximum {max_files} files allowed", "value": len(files)})

    for index, upload in enumerate(files, start=1):
        if upload.size > max_size:
            errors.append({
                "field": f"files.{index}",
                "message": f"File {index}: Size exceeds {max_size // (1024 * 1024)}MB limit",
                "value": upload.filename,
            })
        if upload.content_type not in allowed_types:
            errors.append({
                "field": f"files.{index}",
                "message": f"File {index}: Invalid file type. Allowed: {', '.join(allowed_types)}",
                "value": upload.filename,
            })

    if errors:
        logger.warning(
            "File upload validation failed",
            files=[{"name": f.filename, "size": f.size, "type": f.content_type} for f in files],
        )
        raise ValidationError("File validation failed", errors=errors, source="files")
