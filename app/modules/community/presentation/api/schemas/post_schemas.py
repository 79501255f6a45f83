# 📄 File: app/modules/community/presentation/api/schemas/post_schemas.py
# 🧭 Purpose (Layman Explanation):
# Describes forum posts and comments farmers write to share advice and ask questions.
#
# 🧪 Purpose (Technical Summary):
# Pydantic request schemas for community posts, comments and the post list query.
#
# 🔗 Dependencies:
# - pydantic
# - app.shared.schemas (pagination)
#
# 🔄 Connected Modules / Calls From:
# - app.modules.community.presentation.api.v1.posts

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.shared.schemas import PaginationQuery

MAX_TAGS = 10
MAX_TAG_LENGTH = 30


class PostCategory(str, Enum):
    GENERAL = "general"
    CROPS = "crops"
    PESTS = "pests"
    FARMING = "farming"
    WEATHER = "weather"
    TECHNOLOGY = "technology"
    QUESTION = "question"
    ADVICE = "advice"


def _normalize_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return tags
    normalized = []
    for tag in tags:
        tag = tag.strip().lower()
        if not tag or len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Each tag must be 1-{MAX_TAG_LENGTH} characters")
        if tag not in normalized:
            normalized.append(tag)
    return normalized


class PostCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, use_enum_values=True)

    title: str = Field(..., min_length=5, max_length=200)
    content: str = Field(..., min_length=10, max_length=5000)
    category: PostCategory = PostCategory.GENERAL
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _normalize_tags(v)


class PostUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, use_enum_values=True)

    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    content: Optional[str] = Field(default=None, min_length=10, max_length=5000)
    category: Optional[PostCategory] = None
    tags: Optional[List[str]] = Field(default=None, max_length=MAX_TAGS)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _normalize_tags(v)


class CommentCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=1000)


class PostListQuery(PaginationQuery):
    """Post list query; optionally narrowed to one category."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    category: Optional[PostCategory] = None
